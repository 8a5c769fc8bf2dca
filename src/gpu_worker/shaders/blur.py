"""
Blur shaders for WebGPU.

Bindings:
- Binding 0: Input texture (texture_2d<u32>, rgba8uint)
- Binding 1: Output texture (texture_storage_2d<rgba8uint, write>)
- Binding 2: BlurParams uniform
"""

# Box blur over a (2r+1)^2 window with edge-clamped sampling.
# Channel sums stay in u32: 255 * (2 * 1024 + 1)^2 < 2^32.
BOX_BLUR_SHADER = """
struct BlurParams {
    radius: i32,
    _pad0: i32,
    _pad1: i32,
    _pad2: i32,
};

@group(0) @binding(0) var input_texture: texture_2d<u32>;
@group(0) @binding(1) var output_texture: texture_storage_2d<rgba8uint, write>;
@group(0) @binding(2) var<uniform> params: BlurParams;

@compute @workgroup_size(8, 8)
fn main(@builtin(global_invocation_id) gid: vec3<u32>) {
    let dims = vec2<i32>(textureDimensions(input_texture));
    let coord = vec2<i32>(gid.xy);

    if (coord.x >= dims.x || coord.y >= dims.y) {
        return;
    }

    let r = params.radius;
    var sum = vec4<u32>(0u, 0u, 0u, 0u);

    for (var dy = -r; dy <= r; dy++) {
        let sy = clamp(coord.y + dy, 0, dims.y - 1);
        for (var dx = -r; dx <= r; dx++) {
            let sx = clamp(coord.x + dx, 0, dims.x - 1);
            sum += textureLoad(input_texture, vec2<i32>(sx, sy), 0);
        }
    }

    let side = u32(2 * r + 1);
    let count = side * side;
    // Round half up
    let mean = (sum + vec4<u32>(count / 2u)) / vec4<u32>(count);

    textureStore(output_texture, coord, mean);
}
"""
