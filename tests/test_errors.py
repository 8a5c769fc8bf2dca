"""
Tests for error types and their HTTP mapping.
"""

import numpy as np
import pytest
import wgpu

from gpu_worker.errors import (
    DecodeError,
    EncodeError,
    GpuInitError,
    GpuWorkerError,
    InvalidInput,
    PayloadTooLarge,
    RequestTimeout,
    TransformError,
)
from gpu_worker.processors import Processor


@pytest.mark.parametrize("error_class,error_type,status", [
    (GpuInitError, 'gpu_unavailable', 503),
    (InvalidInput, 'invalid_request', 400),
    (PayloadTooLarge, 'payload_too_large', 413),
    (TransformError, 'transformation_error', 500),
    (DecodeError, 'decode_error', 422),
    (EncodeError, 'encode_error', 500),
    (RequestTimeout, 'timeout', 504),
])
def test_error_mapping(error_class, error_type, status):
    error = error_class("boom")
    assert isinstance(error, GpuWorkerError)
    assert error.error_type == error_type
    assert error.status_code == status


def test_to_dict_without_frame_index():
    assert InvalidInput("bad radius").to_dict() == {
        'error': 'invalid_request',
        'message': 'bad radius',
    }


def test_to_dict_with_frame_index():
    body = TransformError("device lost", frame_index=2).to_dict()
    assert body['frame_index'] == 2
    assert body['error'] == 'transformation_error'


def test_frame_index_zero_is_kept():
    assert TransformError("x", frame_index=0).to_dict()['frame_index'] == 0


class LostDeviceProcessor(Processor):
    name = 'lost-device'

    async def _process(self, pixels, width, height):
        raise wgpu.GPUError("device lost")


@pytest.mark.asyncio
async def test_gpu_error_becomes_transform_error():
    # No device is touched before _process fails
    processor = LostDeviceProcessor(context=None)

    with pytest.raises(TransformError, match="lost-device failed: device lost") as excinfo:
        await processor._run(np.zeros(4, dtype=np.uint8), 1, 1)

    assert isinstance(excinfo.value.__cause__, wgpu.GPUError)
    assert processor.frames_processed == 0
