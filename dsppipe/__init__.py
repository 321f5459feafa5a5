"""Signal-processing building blocks for amateur radio receive pipelines."""

__version__ = "0.1.0"

__all__ = [
    "fano",
    "morse_decoder",
    "poly",
    "real_to_quadrature",
    "regression",
    "sfir_filter",
    "spot_candidate",
    "wspr_message",
    "wspr_utilities",
]