import jax
from .config import AppConfig


def print_env_diagnostics(cfg: AppConfig):
    print("backend:", jax.default_backend())
    print("devices:", jax.devices())
    if cfg.verbose:
        print("🧩 Config summary")
        print(f"  IN   : {cfg.paths.input_path}")
        print(f"  BG   : {cfg.paths.background_path or 'none'} (end={cfg.pipeline.background_end})")
        print(f"  OUT  : {cfg.paths.out_final} @ {cfg.output.fps:g} fps | alpha={cfg.output.alpha}")
        print(
            f"  KEY  : color={cfg.key.color or 'auto'} | similarity={cfg.key.similarity}"
            f" | blend={cfg.key.blend} | blur={cfg.key.edge_blur}px"
        )
        print(
            f"  PIPE : workers={cfg.pipeline.workers} | q={cfg.pipeline.max_buffer_frames}"
            f" | audio={cfg.audio.mode}"
        )
