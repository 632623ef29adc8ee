"""
Domain layer for PowerPoint to PDF conversion.
Provides interfaces (gateways) and a service that receives uploads, drives
the remote document service and cleans up afterwards, so the HTTP layer
only maps results and errors to responses.
"""

from .interfaces import ConversionJob, DocumentServiceGateway, ScratchGateway, UploadedFile
from .service import (
    ConversionService,
    RemoteStepError,
    UploadRejected,
    is_powerpoint,
    pdf_filename,
)
