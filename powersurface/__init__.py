"""Air density, IEC wind-speed normalisation and power-curve surfaces for SCADA analysis."""

__version__ = "0.1.0"
