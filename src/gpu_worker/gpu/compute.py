"""
Compute shader wrapper for WebGPU.

Provides a small API for compiling WGSL compute shaders against a declared
binding layout and recording dispatches into a command encoder.
"""

import struct
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Tuple

import wgpu

if TYPE_CHECKING:
    from .context import GPUContext


class ComputeShader:
    """
    WebGPU compute shader wrapper.

    Example:
        shader = ComputeShader.from_wgsl(
            gpu_ctx,
            shader_code=BOX_BLUR_SHADER,
            bindings=[
                {'binding': 0, 'type': 'texture', 'sample_type': 'uint'},
                {'binding': 1, 'type': 'storage_texture', 'format': 'rgba8uint'},
                {'binding': 2, 'type': 'uniform'},
            ]
        )

        encoder = gpu_ctx.device.create_command_encoder()
        shader.encode_dispatch(
            encoder,
            workgroup_count=shader.workgroups_for(width, height),
            bindings={
                0: input_texture.create_view(),
                1: output_texture.create_view(),
                2: params_buffer,
            }
        )
        gpu_ctx.submit(encoder)
    """

    def __init__(
        self,
        context: 'GPUContext',
        pipeline: 'wgpu.GPUComputePipeline',
        bind_group_layout: 'wgpu.GPUBindGroupLayout',
        workgroup_size: Tuple[int, int] = (8, 8)
    ):
        """
        Initialize compute shader (use from_wgsl() instead).

        Args:
            context: GPU context
            pipeline: WebGPU compute pipeline
            bind_group_layout: Bind group layout for shader bindings
            workgroup_size: @workgroup_size declared by the shader
        """
        self.context = context
        self.pipeline = pipeline
        self.bind_group_layout = bind_group_layout
        self.workgroup_size = workgroup_size

    @classmethod
    def from_wgsl(
        cls,
        context: 'GPUContext',
        shader_code: str,
        entry_point: str = 'main',
        bindings: Optional[List[Dict[str, Any]]] = None,
        workgroup_size: Tuple[int, int] = (8, 8),
        label: Optional[str] = None
    ) -> 'ComputeShader':
        """
        Create compute shader from WGSL code.

        Args:
            context: GPU context
            shader_code: WGSL shader source code
            entry_point: Shader entry point function name (default: 'main')
            bindings: List of binding descriptors:
                [
                    {'binding': 0, 'type': 'texture', 'sample_type': 'uint'},
                    {'binding': 1, 'type': 'storage_texture', 'format': 'rgba8uint'},
                    {'binding': 2, 'type': 'uniform'},
                ]
            workgroup_size: @workgroup_size declared by the shader
            label: Optional debug label

        Returns:
            ComputeShader instance
        """
        device = context.device
        shader_module = device.create_shader_module(code=shader_code, label=label or '')

        entries = [_layout_entry(desc) for desc in (bindings or [])]
        bind_group_layout = device.create_bind_group_layout(entries=entries)

        pipeline_layout = device.create_pipeline_layout(
            bind_group_layouts=[bind_group_layout]
        )

        pipeline = device.create_compute_pipeline(
            layout=pipeline_layout,
            compute={
                "module": shader_module,
                "entry_point": entry_point,
            }
        )

        return cls(
            context=context,
            pipeline=pipeline,
            bind_group_layout=bind_group_layout,
            workgroup_size=workgroup_size
        )

    def workgroups_for(self, width: int, height: int) -> Tuple[int, int, int]:
        """Workgroup count giving one invocation per pixel."""
        wx, wy = self.workgroup_size
        return ((width + wx - 1) // wx, (height + wy - 1) // wy, 1)

    def encode_dispatch(
        self,
        encoder: 'wgpu.GPUCommandEncoder',
        workgroup_count: Tuple[int, int, int],
        bindings: Dict[int, Any]
    ) -> None:
        """
        Record a dispatch into encoder.

        Args:
            encoder: Command encoder to record into
            workgroup_count: Number of workgroups to dispatch (x, y, z)
            bindings: Binding number -> GPUBuffer or GPUTextureView
        """
        bind_group_entries = []
        for binding_num, resource in bindings.items():
            if isinstance(resource, wgpu.GPUBuffer):
                resource = {"buffer": resource, "offset": 0, "size": resource.size}
            bind_group_entries.append({
                "binding": binding_num,
                "resource": resource,
            })

        bind_group = self.context.device.create_bind_group(
            layout=self.bind_group_layout,
            entries=bind_group_entries
        )

        compute_pass = encoder.begin_compute_pass()
        compute_pass.set_pipeline(self.pipeline)
        compute_pass.set_bind_group(0, bind_group)
        compute_pass.dispatch_workgroups(*workgroup_count)
        compute_pass.end()

    def __repr__(self) -> str:
        return f"ComputeShader(workgroup_size={self.workgroup_size})"


def _layout_entry(binding_desc: Dict[str, Any]) -> Dict[str, Any]:
    binding_num = binding_desc['binding']
    binding_type = binding_desc.get('type', 'texture')
    entry: Dict[str, Any] = {
        "binding": binding_num,
        "visibility": wgpu.ShaderStage.COMPUTE,
    }

    if binding_type == 'texture':
        entry["texture"] = {
            "sample_type": binding_desc.get('sample_type', 'float'),
            "view_dimension": wgpu.TextureViewDimension.d2,
            "multisampled": False,
        }
    elif binding_type == 'storage_texture':
        entry["storage_texture"] = {
            "access": wgpu.StorageTextureAccess.write_only,
            "format": binding_desc.get('format', 'rgba8uint'),
            "view_dimension": wgpu.TextureViewDimension.d2,
        }
    elif binding_type == 'uniform':
        entry["buffer"] = {"type": wgpu.BufferBindingType.uniform}
    else:
        raise ValueError(f"Unsupported binding type: {binding_type}")

    return entry


def create_uniform_buffer(
    context: 'GPUContext',
    data: Dict[str, Any],
    layout: List[Tuple[str, str]]
) -> 'wgpu.GPUBuffer':
    """
    Create uniform buffer from Python data.

    Args:
        context: GPU context
        data: Dictionary of uniform values
        layout: List of (name, type) tuples defining struct layout:
            [
                ('radius', 'i32'),
                ('width', 'u32'),
            ]

    Returns:
        WebGPU buffer with packed uniform data, padded to 16 bytes

    Example:
        params_buffer = create_uniform_buffer(
            gpu_ctx,
            data={'radius': 3},
            layout=[('radius', 'i32')]
        )
    """
    # All supported types are 4-byte scalars, so packing in order matches
    # the WGSL struct layout; the total is rounded up to 16 bytes.
    struct_format = '<'
    values = []

    for name, dtype in layout:
        value = data[name]

        if dtype == 'u32':
            struct_format += 'I'
            values.append(int(value))
        elif dtype == 'i32':
            struct_format += 'i'
            values.append(int(value))
        elif dtype == 'f32':
            struct_format += 'f'
            values.append(float(value))
        else:
            raise ValueError(f"Unsupported uniform type: {dtype}")

    packed_data = struct.pack(struct_format, *values)
    packed_data += bytes(-len(packed_data) % 16)

    buffer = context.create_buffer(
        size=len(packed_data),
        usage=wgpu.BufferUsage.UNIFORM | wgpu.BufferUsage.COPY_DST,
        label='uniform buffer'
    )

    context.queue.write_buffer(buffer, 0, packed_data)

    return buffer
