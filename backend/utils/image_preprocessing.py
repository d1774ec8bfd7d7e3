"""
Image Preprocessing Utility
===========================
Turns an accepted input into the page images sent to the vision model.

Features:
    - PDF page rendering (one JPEG per page, fixed upscale factor)
    - Per-page progress callback for long documents
    - Oversized page downscaling
    - Raster images passed through untouched
"""

from PIL import Image
from dataclasses import dataclass
from typing import Callable, List, Optional
import asyncio
import base64
import io
import logging

from pdf2image import convert_from_bytes, pdfinfo_from_bytes
from pdf2image.exceptions import PDFPageCountError, PDFSyntaxError

from config import settings
from services.exceptions import EmptyDocument
from utils.document_input import DocumentInput, DocumentKind

logger = logging.getLogger(__name__)

PageCallback = Callable[[int, int], None]


@dataclass
class PageImage:
    """A single page ready for the vision model."""
    page_number: int
    data: bytes
    mime_type: str = "image/jpeg"

    def to_data_url(self) -> str:
        encoded = base64.b64encode(self.data).decode("ascii")
        return f"data:{self.mime_type};base64,{encoded}"


class ImagePreprocessor:
    """
    Page rendering for the vision strategy.

    Usage:
        preprocessor = ImagePreprocessor()
        pages = await preprocessor.to_page_images(document, kind)
    """

    def __init__(
        self,
        dpi: int = None,
        jpeg_quality: int = None,
        max_dimension: int = None
    ):
        self.dpi = dpi or settings.pdf_render_dpi
        self.jpeg_quality = jpeg_quality or settings.PAGE_IMAGE_JPEG_QUALITY
        self.max_dimension = max_dimension or settings.MAX_IMAGE_DIMENSION

    # =========================================================================
    # SIZE OPTIMIZATION
    # =========================================================================

    def resize_if_needed(
        self,
        image: Image.Image,
        max_dimension: int = None
    ) -> Image.Image:
        """
        Resize image if larger than max dimension.
        Preserves aspect ratio.
        """
        max_dim = max_dimension or self.max_dimension
        width, height = image.size

        if max(width, height) <= max_dim:
            return image

        if width > height:
            new_width = max_dim
            new_height = int(height * (max_dim / width))
        else:
            new_height = max_dim
            new_width = int(width * (max_dim / height))

        logger.info(f"Resizing page from {width}x{height} to {new_width}x{new_height}")
        return image.resize((new_width, new_height), Image.Resampling.LANCZOS)

    def image_to_jpeg(self, image: Image.Image, quality: int = None) -> bytes:
        """Encode as JPEG (RGB)"""
        if image.mode != "RGB":
            image = image.convert("RGB")
        buffer = io.BytesIO()
        image.save(buffer, format="JPEG", quality=quality or self.jpeg_quality)
        return buffer.getvalue()

    # =========================================================================
    # PDF HANDLING
    # =========================================================================

    def get_pdf_page_count(self, content: bytes) -> int:
        """Number of pages without rendering anything"""
        try:
            info = pdfinfo_from_bytes(content)
        except (PDFPageCountError, PDFSyntaxError) as e:
            logger.error(f"Could not read PDF: {e}")
            raise EmptyDocument() from e
        return int(info.get("Pages", 0))

    def render_pdf_page(self, content: bytes, page_number: int) -> bytes:
        """Render one 1-indexed page to JPEG bytes"""
        images = convert_from_bytes(
            content,
            dpi=self.dpi,
            first_page=page_number,
            last_page=page_number
        )
        if not images:
            raise EmptyDocument()

        page = self.resize_if_needed(images[0])
        return self.image_to_jpeg(page)

    async def pdf_to_page_images(
        self,
        content: bytes,
        on_page: Optional[PageCallback] = None
    ) -> List[PageImage]:
        """
        Render every page of a PDF, in page order.

        on_page(page_number, total_pages) fires after each page.
        """
        total = await asyncio.to_thread(self.get_pdf_page_count, content)
        if total < 1:
            raise EmptyDocument()

        logger.info(f"Converting PDF to images: {total} page(s) at {self.dpi} DPI")

        pages: List[PageImage] = []
        for page_number in range(1, total + 1):
            data = await asyncio.to_thread(self.render_pdf_page, content, page_number)
            pages.append(PageImage(page_number=page_number, data=data))
            logger.debug(f"Page {page_number}/{total} converted ({len(data) // 1024}KB)")
            if on_page is not None:
                on_page(page_number, total)

        logger.info(f"PDF converted to {len(pages)} images")
        return pages

    async def to_page_images(
        self,
        document: DocumentInput,
        kind: DocumentKind,
        on_page: Optional[PageCallback] = None
    ) -> List[PageImage]:
        """A document renders page by page; a raster image is a single page as-is."""
        if kind == DocumentKind.DOCUMENT:
            return await self.pdf_to_page_images(document.content, on_page)

        if not document.content:
            raise EmptyDocument()

        mime = "image/png" if document.mime_type == "image/png" else "image/jpeg"
        return [PageImage(page_number=1, data=document.content, mime_type=mime)]


# Singleton instance
image_preprocessor = ImagePreprocessor()
