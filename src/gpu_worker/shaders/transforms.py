"""
Geometric transformation shaders for WebGPU.

Both flips operate on rgba8uint textures so texels are copied bit-exact.
"""

# Render variant: one triangle covers the whole target, and each fragment
# loads the source texel from the vertically inverted row.
# Binding 0: Input texture (texture_2d<u32>)
FLIP_VERTICAL_RENDER_SHADER = """
@group(0) @binding(0) var input_texture: texture_2d<u32>;

struct VertexOutput {
    @builtin(position) position: vec4<f32>,
};

@vertex
fn vs_main(@builtin(vertex_index) vertex_index: u32) -> VertexOutput {
    var out: VertexOutput;
    // Fullscreen triangle
    let x = f32((vertex_index << 1u) & 2u);
    let y = f32(vertex_index & 2u);
    out.position = vec4<f32>(x * 2.0 - 1.0, 1.0 - y * 2.0, 0.0, 1.0);
    return out;
}

@fragment
fn fs_main(in: VertexOutput) -> @location(0) vec4<u32> {
    let dims = vec2<i32>(textureDimensions(input_texture));
    // Fragment positions are pixel centres; truncation gives the texel index
    let coord = vec2<i32>(in.position.xy);
    let source_coord = vec2<i32>(coord.x, dims.y - 1 - coord.y);
    return textureLoad(input_texture, source_coord, 0);
}
"""

# Compute variant.
# Binding 0: Input texture (texture_2d<u32>)
# Binding 1: Output texture (texture_storage_2d<rgba8uint, write>)
FLIP_VERTICAL_SHADER = """
@group(0) @binding(0) var input_texture: texture_2d<u32>;
@group(0) @binding(1) var output_texture: texture_storage_2d<rgba8uint, write>;

@compute @workgroup_size(8, 8)
fn main(@builtin(global_invocation_id) gid: vec3<u32>) {
    let dims = vec2<i32>(textureDimensions(input_texture));
    let coord = vec2<i32>(gid.xy);

    if (coord.x >= dims.x || coord.y >= dims.y) {
        return;
    }

    // Flip Y coordinate
    let flipped_coord = vec2<i32>(coord.x, dims.y - coord.y - 1);
    let color = textureLoad(input_texture, flipped_coord, 0);

    textureStore(output_texture, coord, color);
}
"""
