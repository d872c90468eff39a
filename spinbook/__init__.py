"""SpinBook HQ - DJ booking marketplace"""

__version__ = "1.0.0"
