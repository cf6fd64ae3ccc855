# cppgraph/config.py
# AI-Mind (C) 2025 by Martin Bukowski is licensed under CC BY-NC-SA 4.0

from dataclasses import dataclass, asdict
import os
from typing import Optional, Dict, Any

from dotenv import load_dotenv


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes")


def get_env(dotenv_path: Optional[str] = None) -> Dict[str, Any]:
    if dotenv_path is not None:
        load_dotenv(dotenv_path)
    else:
        load_dotenv()

    return {
        "max_entities": int(os.getenv("CPPGRAPH_MAX_ENTITIES", 5_000_000)),
        "id_length": int(os.getenv("CPPGRAPH_ID_LENGTH", 16)),
        "match_unmarked_overrides": _env_bool("CPPGRAPH_MATCH_UNMARKED_OVERRIDES", "true"),
        "report_unmatched_overrides": _env_bool("CPPGRAPH_REPORT_UNMATCHED_OVERRIDES", "true"),
        "parallel_workers": int(os.getenv("CPPGRAPH_PARALLEL_WORKERS", 4)),
    }


@dataclass
class GraphConfig:
    # Store capacity; reaching it aborts the build
    max_entities: int = 5_000_000
    # Hex digits kept from the sha256 of a structural key
    id_length: int = 16
    match_unmarked_overrides: bool = True
    report_unmatched_overrides: bool = True
    parallel_workers: int = 4

    def __post_init__(self):
        if not 8 <= self.id_length <= 64:
            raise ValueError(f"id_length must be between 8 and 64, got {self.id_length}")

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def update(self, **kwargs):
        for key, value in kwargs.items():
            setattr(self, key, value)

    @classmethod
    def from_env(cls, dotenv_file: Optional[str] = None) -> "GraphConfig":
        env = get_env(dotenv_file)
        return cls(**env)
