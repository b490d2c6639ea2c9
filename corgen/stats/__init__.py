"""Sampling and marginal transformation modules."""

from . import copula as copula
from . import binary_ep as binary_ep
from . import marginals as marginals
