"""
User interface package
Terminal rendering of the playback engine
"""

from .terminal import TerminalView

__all__ = ['TerminalView']
