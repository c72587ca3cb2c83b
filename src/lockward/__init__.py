# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""lockward - compliance integrity core for AppLocker policy administration."""

__version__ = "1.2.10"
