"""
gpu_worker: GPU blur and mirror transforms for images and animated GIFs.

Each processor owns its own WebGPU device and runs one transform call at a
time. Animations are decoded with Pillow, transformed frame by frame on the
GPU, and re-encoded with their delays, disposal methods and loop count.

Example:
    from gpu_worker import Mirror, decode_gif, encode_gif, process_animation

    animation = decode_gif(open('in.gif', 'rb').read())
    mirrored = await process_animation(animation, Mirror())
    open('out.gif', 'wb').write(encode_gif(mirrored))

The HTTP service lives in gpu_worker.server and is started with:
    python -m gpu_worker --port 8080
"""

# Errors
from .errors import (
    GpuWorkerError,
    GpuInitError,
    InvalidInput,
    PayloadTooLarge,
    TransformError,
    DecodeError,
    EncodeError,
    RequestTimeout,
)

# GPU processors
from .processors import (
    Processor,
    BlurProcessor,
    MirrorProcessor,
    MAX_BLUR_RADIUS,
    new_blur_processor,
    new_mirror_processor,
)

# Animation codec and orchestration
from .codec import Animation, Frame, Disposal, decode_gif, encode_gif
from .pipeline import Blur, Mirror, PipelineState, TransformPipeline, process_animation

from .config import ServerConfig

__all__ = [
    # Errors
    'GpuWorkerError',
    'GpuInitError',
    'InvalidInput',
    'PayloadTooLarge',
    'TransformError',
    'DecodeError',
    'EncodeError',
    'RequestTimeout',

    # Processors
    'Processor',
    'BlurProcessor',
    'MirrorProcessor',
    'MAX_BLUR_RADIUS',
    'new_blur_processor',
    'new_mirror_processor',

    # Codec
    'Animation',
    'Frame',
    'Disposal',
    'decode_gif',
    'encode_gif',

    # Pipeline
    'Blur',
    'Mirror',
    'PipelineState',
    'TransformPipeline',
    'process_animation',

    'ServerConfig',
]

__version__ = '1.0.0'
