"""Framework-neutral intermediate representation.

The validator lives in ``uiloom.core.ir.validator`` and is imported from
there; it depends on the mapping registry, which depends on these models.
"""

from .errors import (
    GenerationError,
    GenerationFailure,
    ParseError,
    Result,
    ResultStatus,
    SourceSyntaxError,
    ValidationError,
    ValidationErrorKind,
)
from .models import (
    AnimationSpec,
    DocumentMetadata,
    Element,
    Expression,
    ExpressionSlot,
    GestureSpec,
    IRDocument,
    IRNode,
    Keyframe,
    Literal,
    LiteralKind,
    PropValue,
    PropertyTween,
    StateBinding,
    StatePattern,
    StateTransition,
    TextLiteral,
    TweenSegment,
    literal,
    node_path,
    placeholder,
    replace_node,
    unreachable,
    walk,
)

__all__ = [
    "AnimationSpec",
    "DocumentMetadata",
    "Element",
    "Expression",
    "ExpressionSlot",
    "GenerationError",
    "GenerationFailure",
    "GestureSpec",
    "IRDocument",
    "IRNode",
    "Keyframe",
    "Literal",
    "LiteralKind",
    "ParseError",
    "PropValue",
    "PropertyTween",
    "Result",
    "ResultStatus",
    "SourceSyntaxError",
    "StateBinding",
    "StatePattern",
    "StateTransition",
    "TextLiteral",
    "TweenSegment",
    "ValidationError",
    "ValidationErrorKind",
    "literal",
    "node_path",
    "placeholder",
    "replace_node",
    "unreachable",
    "walk",
]
