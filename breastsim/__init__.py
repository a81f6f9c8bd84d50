# SPDX-License-Identifier: Apache-2.0
"""Breast mesh measurement and augmentation simulation toolkit."""

from __future__ import annotations

from dotenv import load_dotenv

# load environment variables from .env if present
load_dotenv()

__all__: list[str] = []
__version__ = "0.1.0"
