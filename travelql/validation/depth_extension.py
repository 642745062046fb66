"""Depth limiting extension for Strawberry GraphQL."""

from typing import Iterable, Optional, Set, Type

from graphql import (
    FieldNode, FragmentSpreadNode, GraphQLError, InlineFragmentNode, OperationDefinitionNode,
    SelectionNode, ValidationRule
)
from strawberry.extensions import AddValidationRules


def _depth_limit_rule(max_depth: int, ignore_introspection: bool) -> Type[ValidationRule]:
    class DepthLimitRule(ValidationRule):
        def enter_operation_definition(self, node: OperationDefinitionNode, *_args):
            for selection in node.selection_set.selections:
                if isinstance(selection, FieldNode):
                    if ignore_introspection and selection.name.value.startswith('__'):
                        continue
                    depth = self._field_depth(selection, 1, set())
                else:
                    depth = self._selections_depth([selection], 0, set())

                if depth > max_depth:
                    self.report_error(GraphQLError(
                        f"Query depth ({depth}) exceeds maximum allowed depth ({max_depth})",
                        selection
                    ))

        def _field_depth(self, field: FieldNode, current: int, seen: Set[str]) -> int:
            if not field.selection_set:
                return current
            return self._selections_depth(field.selection_set.selections, current, seen)

        def _selections_depth(self, selections: Iterable[SelectionNode], current: int, seen: Set[str]) -> int:
            deepest = current
            for selection in selections:
                if isinstance(selection, FieldNode):
                    depth = self._field_depth(selection, current + 1, seen)
                elif isinstance(selection, InlineFragmentNode):
                    depth = self._selections_depth(selection.selection_set.selections, current, seen)
                elif isinstance(selection, FragmentSpreadNode):
                    name = selection.name.value
                    fragment = self.context.get_fragment(name)
                    if fragment is None or name in seen:
                        continue
                    depth = self._selections_depth(fragment.selection_set.selections, current, seen | {name})
                else:
                    continue
                deepest = max(deepest, depth)
            return deepest

    return DepthLimitRule


class DepthLimitExtension(AddValidationRules):
    """
    Rejects operations nested deeper than ``max_depth`` during validation.

    Fragments and inline fragments count toward the depth of the field that
    spreads them.
    """

    def __init__(self, *, max_depth: int = 10, ignore_introspection: bool = True, **kwargs):
        """
        Args:
            max_depth: Maximum allowed query depth
            ignore_introspection: Whether to skip ``__schema`` / ``__type`` roots
        """
        self.max_depth = max_depth
        self.ignore_introspection = ignore_introspection
        super().__init__([_depth_limit_rule(max_depth, ignore_introspection)])


def create_depth_limit_extension(max_depth: Optional[int]) -> Optional[DepthLimitExtension]:
    """Extension instance for ``max_depth``, or None when depth is unlimited."""
    if max_depth is None:
        return None
    return DepthLimitExtension(max_depth=max_depth)
