"""
Weight initialization public API.

Importing this module registers the built-in policies (``uniform`` and
``truncated_normal``) into the `WeightInitializer` registry via import
side effects.

Exports
-------
- WeightInitializer:
    The registry-backed initializer dispatcher.
- random_tensor:
    Convenience constructor returning a freshly initialized parameter tensor.
"""

from ._uniform import *
from ._normal import *
from ._base import DEFAULT_POLICY, WeightInitializer, random_tensor

__all__ = [
    WeightInitializer.__name__,
    random_tensor.__name__,
    "DEFAULT_POLICY",
]
