"""Release pipeline: installer rendering, fingerprinting, formula publishing."""

from __future__ import annotations
