"""YAML-based export profiles.

A profile holds a ``default`` section and per-domain overrides::

    default:
      include_metadata: true
    domains:
      medium.com:
        embed_images: true
      tryhackme.com:
        parser: tryhackme

The longest domain key matching the URL host (exactly or as a suffix) wins.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml

from markclip.extractors.urlnorm import extract_domain
from markclip.items import ExportOptions

logger = logging.getLogger(__name__)

_OPTION_KEYS = frozenset(ExportOptions.model_fields)


def profile_settings(path: str | Path, url: str) -> dict[str, Any]:
    """Load the YAML profile at *path* and return merged settings for *url*."""
    data = yaml.safe_load(Path(path).read_text(encoding="utf-8")) or {}
    default = data.get("default", {}) if isinstance(data, dict) else {}
    domains = data.get("domains", {}) if isinstance(data, dict) else {}

    host = extract_domain(url)
    best_key = ""
    best_cfg: dict[str, Any] = {}
    if isinstance(domains, dict):
        for key, cfg in domains.items():
            if not isinstance(key, str) or not isinstance(cfg, dict):
                continue
            key_lower = key.lower()
            if (host == key_lower or host.endswith("." + key_lower)) and (
                len(key_lower) > len(best_key)
            ):
                best_key = key_lower
                best_cfg = cfg

    merged: dict[str, Any] = {}
    if isinstance(default, dict):
        merged.update(default)
    merged.update(best_cfg)
    # YAML authors tend to write embed-images as well as embed_images
    return {str(k).replace("-", "_"): v for k, v in merged.items()}


def load_profile(path: str | Path, url: str) -> ExportOptions:
    """Return the :class:`ExportOptions` the profile at *path* gives *url*."""
    merged = profile_settings(path, url)
    unknown = sorted(set(merged) - _OPTION_KEYS)
    if unknown:
        logger.warning("Ignoring unknown profile key(s) in %s: %s", path, ", ".join(unknown))
    return ExportOptions(**{k: v for k, v in merged.items() if k in _OPTION_KEYS})
