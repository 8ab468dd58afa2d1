import numpy as np
import jax
import jax.numpy as jnp

from .types import Color, KeySettings

MIN_SIMILARITY = 1e-3
MIN_SOFTNESS = 0.01

# BT.601 chroma rows (offsets cancel out in differences)
_U = (-0.168736, -0.331264, 0.5)
_V = (0.5, -0.418688, -0.081312)


def _chroma(r, g, b):
    u = r * _U[0] + g * _U[1] + b * _U[2]
    v = r * _V[0] + g * _V[1] + b * _V[2]
    return u, v


def key_chroma(color: Color) -> np.ndarray:
    r, g, b = color.normalized()
    u, v = _chroma(r, g, b)
    return np.array([u, v], dtype=np.float32)


@jax.jit
def _weights(rgb, key_uv, similarity, softness):
    u, v = _chroma(rgb[..., 0], rgb[..., 1], rgb[..., 2])
    du = u - key_uv[0]
    dv = v - key_uv[1]
    dist = jnp.sqrt((du * du + dv * dv) * 0.5)

    # 1 inside the similarity radius, smoothstep down to 0 over the softness band
    t = jnp.clip((dist - similarity) / softness, 0.0, 1.0)
    return 1.0 - t * t * (3.0 - 2.0 * t)


def _params(settings: KeySettings):
    similarity = max(float(settings.similarity), MIN_SIMILARITY)
    softness = max(float(settings.blend), MIN_SOFTNESS)
    return similarity, softness


def classify_frame(frame_rgb_u8: np.ndarray, settings: KeySettings) -> np.ndarray:
    """Per-pixel keying weights for an (H, W, 3) uint8 RGB frame, float32 in [0, 1]."""
    if settings.key_color is None:
        raise ValueError("classify_frame needs a resolved key color")
    similarity, softness = _params(settings)
    rgb = jnp.asarray(frame_rgb_u8, dtype=jnp.float32) / 255.0
    w = _weights(rgb, jnp.asarray(key_chroma(settings.key_color)), similarity, softness)
    return np.array(jax.device_get(w), dtype=np.float32)


def key_weight(color: Color, settings: KeySettings) -> float:
    pixel = np.array([[color.as_tuple()]], dtype=np.uint8)
    return float(classify_frame(pixel, settings)[0, 0])
