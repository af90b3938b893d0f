"""expression subpackage: value classification and literal expression rendering.

Re-exports the public API:
- Category / classify: route a runtime value to its rendering rule
- RenderContext: immutable serializer settings plus recursion state
- ExpressionSerializer: renders a value tree as literal expression text

Example::

    from desired_state.expression import ExpressionSerializer, RenderContext

    text = ExpressionSerializer(RenderContext(strong=True)).serialize({"Port": 443})
    # "[hashtable]@{'Port' = [int]443}"
"""

from __future__ import annotations

from desired_state.expression.categories import Category, classify, type_tag
from desired_state.expression.context import RenderContext
from desired_state.expression.serializer import DEPTH_PLACEHOLDER, ExpressionSerializer

__all__ = [
    "DEPTH_PLACEHOLDER",
    "Category",
    "ExpressionSerializer",
    "RenderContext",
    "classify",
    "type_tag",
]
