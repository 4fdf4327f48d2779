"""Local regression kernel used by the power surface."""

from powersurface.regression.loess import LoessFit, loess_fit

__all__ = ["LoessFit", "loess_fit"]
