"""
Error types for gpu-worker.

Every failure the core can produce is a GpuWorkerError subclass. Each class
carries the error_type string and HTTP status the service shell uses when
turning it into a response, so the core itself never deals with HTTP.

Example:
    try:
        result = await processor.blur(pixels, width, height, radius=-1)
    except InvalidInput as e:
        print(e.error_type, e.status_code)   # invalid_request 400
"""

from typing import Any, Dict, Optional


class GpuWorkerError(Exception):
    """Base class for all gpu-worker errors."""

    error_type = 'internal_error'
    status_code = 500

    def __init__(self, message: str, frame_index: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.frame_index = frame_index

    def to_dict(self) -> Dict[str, Any]:
        """JSON body used by the HTTP shell."""
        body: Dict[str, Any] = {
            'error': self.error_type,
            'message': str(self),
        }
        if self.frame_index is not None:
            body['frame_index'] = self.frame_index
        return body


class GpuInitError(GpuWorkerError):
    """No compatible GPU adapter/device could be created."""

    error_type = 'gpu_unavailable'
    status_code = 503


class InvalidInput(GpuWorkerError):
    """Input rejected before any GPU submission."""

    error_type = 'invalid_request'
    status_code = 400


class PayloadTooLarge(InvalidInput):
    """Upload exceeds the configured size limit."""

    error_type = 'payload_too_large'
    status_code = 413


class TransformError(GpuWorkerError):
    """GPU submission or readback failed mid-operation."""

    error_type = 'transformation_error'
    status_code = 500


class DecodeError(GpuWorkerError):
    """Malformed or unsupported animation container."""

    error_type = 'decode_error'
    status_code = 422


class EncodeError(GpuWorkerError):
    """Processed frames could not be written back to the container."""

    error_type = 'encode_error'
    status_code = 500


class RequestTimeout(GpuWorkerError):
    """Caller gave up waiting for the transform."""

    error_type = 'timeout'
    status_code = 504
