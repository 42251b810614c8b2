"""Validation of cluster API contract version strings such as ``v1beta1``."""

from __future__ import annotations

import re

_INT_RE = re.compile(r"[+-]?[0-9]+")
_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1

_ALPHA = "alpha"
_BETA = "beta"


def _is_int(text: str) -> bool:
    """Whether ``text`` is a signed decimal integer that fits in 64 bits."""
    if not _INT_RE.fullmatch(text):
        return False
    return _INT64_MIN <= int(text) <= _INT64_MAX


def is_capi_contract_version(version: str) -> bool:
    """Whether ``version`` is an underscore-separated list of contract versions."""
    return all(is_capi_contract_single_version(v) for v in version.split("_"))


def is_capi_contract_single_version(version: str) -> bool:
    """Whether ``version`` is a single contract version (v1, v1alpha1, v1beta1...)."""
    if not version.startswith("v"):
        return False

    parts = version.split("v")
    if len(parts) != 2 or parts[0] != "" or "_" in version:
        return False

    number = parts[1]
    alpha_idx = number.find(_ALPHA)
    beta_idx = number.find(_BETA)

    if alpha_idx != -1:
        return is_non_major(number, _ALPHA, alpha_idx)
    if beta_idx != -1:
        return is_non_major(number, _BETA, beta_idx)

    return _is_int(number.strip())


def is_non_major(version: str, prefix: str, prefix_idx: int) -> bool:
    """Whether ``version`` is ``<major><prefix><minor>`` with numeric parts."""
    major = version[:prefix_idx]
    minor = version[prefix_idx + len(prefix):]
    return _is_int(major) and _is_int(minor)