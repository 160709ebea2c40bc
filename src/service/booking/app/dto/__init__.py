"""Application layer DTOs"""

from src.service.booking.app.dto.processing_result import (
    Ok,
    ProcessingResult,
    Retryable,
    Skip,
    SkipReason,
)

__all__ = ['Ok', 'ProcessingResult', 'Retryable', 'Skip', 'SkipReason']
