"""Build option matrix."""

from qtbuilder.matrix.option_matrix import MatrixSnapshot, OptionMatrix


__all__ = ["MatrixSnapshot", "OptionMatrix"]
