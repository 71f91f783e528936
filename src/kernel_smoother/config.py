from dataclasses import dataclass
import os

from dotenv import load_dotenv

load_dotenv(override=False)


@dataclass
class Settings:
    log_level: str = os.getenv("KERNEL_SMOOTHER_LOG_LEVEL", "INFO")
    random_seed: int = int(os.getenv("KERNEL_SMOOTHER_RANDOM_SEED", "42"))
    n_folds: int = int(os.getenv("KERNEL_SMOOTHER_N_FOLDS", "5"))
    bandwidth: float = float(os.getenv("KERNEL_SMOOTHER_BANDWIDTH", "1.0"))


settings = Settings()

__all__ = ["Settings", "settings"]
