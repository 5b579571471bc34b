"""
Utility helpers for inspecting generated data.
"""

from synth_forge.utils.quality import QualityReporter

__all__ = ["QualityReporter"]
