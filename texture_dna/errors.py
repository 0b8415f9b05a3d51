"""
texture_dna/errors.py - Exception hierarchy
"""


class TextureDNAError(Exception):
    """Base class for all texture_dna errors"""


class NavigationError(TextureDNAError):
    """Unbalanced group/ungroup calls on a genome address"""


class NotInteractiveError(TextureDNAError):
    """Operation needs the parameter log of an interactive genome"""


class ChromosomeFormatError(TextureDNAError, ValueError):
    """Malformed persisted chromosome"""

    def __init__(self, line_number: int, line: str, reason: str):
        self.line_number = line_number
        self.line = line
        self.reason = reason
        super().__init__(f"line {line_number}: {reason}: {line!r}")
