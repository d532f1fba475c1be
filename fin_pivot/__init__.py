"""fin-pivot: validation and unpivot pipeline for monthly financial workbooks."""

__version__ = "0.3.0"
