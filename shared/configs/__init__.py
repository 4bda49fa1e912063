"""Layered YAML configuration: loading, validation and fingerprints."""
from .fingerprint import compute_fingerprint, section_fingerprints
from .loader import ResolvedConfig, load_config, parse_set_args

__all__ = ["load_config", "parse_set_args", "ResolvedConfig", "compute_fingerprint", "section_fingerprints"]
