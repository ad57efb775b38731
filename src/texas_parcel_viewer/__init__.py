"""Texas parcel map viewer: parcel selection, detail API and exports."""

__version__ = "0.1.0"
