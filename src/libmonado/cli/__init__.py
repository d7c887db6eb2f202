"""
CLI module for libmonado.

Provides the monado-ctl command-line tool.
"""

from .monado_ctl import MonadoController, main

__all__ = ["MonadoController", "main"]
