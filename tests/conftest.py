"""
Shared fixtures.

GPU fixtures skip the test when no adapter is available, so the rest of the
suite runs on machines without a GPU.
"""

import pytest
import pytest_asyncio

from gpu_worker import GpuInitError, new_blur_processor, new_mirror_processor
from gpu_worker.gpu import GPUContext

from helpers import make_gif, striped_frame


@pytest_asyncio.fixture
async def blur_processor():
    try:
        processor = await new_blur_processor()
    except GpuInitError as e:
        pytest.skip(f"No GPU available: {e}")
    yield processor
    processor.close()


@pytest_asyncio.fixture(params=['render', 'compute'])
async def mirror_processor(request):
    try:
        processor = await new_mirror_processor(method=request.param)
    except GpuInitError as e:
        pytest.skip(f"No GPU available: {e}")
    yield processor
    processor.close()


@pytest.fixture
def three_frame_gif():
    """100x100 animation, 3 distinct frames, 500 ms each, looping forever."""
    frames = [striped_frame(100, 100, offset=i) for i in range(3)]
    return make_gif(frames, durations=[500, 500, 500], disposal=[1, 1, 1], loop=0)


@pytest_asyncio.fixture
async def gpu_context():
    try:
        context = await GPUContext.create()
    except GpuInitError as e:
        pytest.skip(f"No GPU available: {e}")
    yield context
    context.destroy()
