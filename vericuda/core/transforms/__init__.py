"""Obligation transformations used between prover attempts."""

from .base import Transformer
from .sexpr_transformer import SExprTransformer

__all__ = ["Transformer", "SExprTransformer"]
