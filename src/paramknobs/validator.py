"""Recursive, depth-bounded validation of nested input against a shape.

The validator never raises for bad input. Every problem becomes an
:class:`~paramknobs.issues.Issue`; one field's failure never prevents its
siblings from being checked, and a failed subtree simply has no entry in its
parent's params.

Example:
    ```python
    shape = (
        ShapeBuilder()
        .string("name")
        .integer("age", optional=True, min=0)
        .build()
    )
    result = Validator().validate(shape, {"name": "Ada"})
    result.valid
    # True
    result.params
    # {'name': 'Ada'}
    ```
"""

from __future__ import annotations

import copy
import logging
from typing import Any, Dict, List, Mapping, Sequence, Tuple

from .issues import DEFAULT_CATALOG, Issue, IssueCode, MessageCatalog, PathSegment
from .primitives import (
    is_mapping,
    is_numeric,
    is_sequence,
    matches,
    parse_boolean,
    type_name_of,
)
from .registry import EMPTY_RESOLVER, ScopeResolver
from .result import ValidationResult
from .shapes import (
    MISSING,
    ArrayOf,
    EnumRef,
    Literal,
    ObjectOf,
    ParamSpec,
    PrimitiveType,
    Reference,
    Shape,
    UnionOf,
    UnionSpec,
    VariantSpec,
    NUMERIC_TYPES,
    to_text,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = 10

# Marks "no params entry"; distinct from a valid None.
NOT_SET: Any = MISSING

Path = Tuple[PathSegment, ...]
Outcome = Tuple[List[Issue], Any]


def same_value(left: Any, right: Any) -> bool:
    """Equality that never treats booleans as integers."""
    if isinstance(left, bool) or isinstance(right, bool):
        return type(left) is type(right) and left == right
    return bool(left == right)


def enum_includes(values: Sequence[Any], value: Any) -> bool:
    """Membership with a string-normalized fallback."""
    if any(same_value(candidate, value) for candidate in values):
        return True
    text = to_text(value)
    return any(isinstance(candidate, str) and candidate == text for candidate in values)


def is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, dict)) or is_mapping(value):
        return len(value) == 0
    return False


def normalize_keys(data: Mapping[Any, Any]) -> Dict[str, Any]:
    """Canonical comparable form of input keys."""
    return {str(key): value for key, value in data.items()}


def single_depth_issue(issues: List[Issue]) -> List[Issue]:
    """Keep the first ``depth_exceeded`` issue and drop the others.

    A structure nested past the bound reports one issue regardless of how
    many of its branches reach the bound.
    """
    kept: List[Issue] = []
    seen_depth = False
    for issue in issues:
        if issue.code is IssueCode.DEPTH_EXCEEDED:
            if seen_depth:
                continue
            seen_depth = True
        kept.append(issue)
    return kept


class Validator:
    """Checks data against shapes, resolving names through one resolver.

    Args:
        resolver: Scope resolver for named types and enums
        catalog: Message catalog used for issue details
        locale: Locale passed to the catalog
    """

    def __init__(
        self,
        resolver: ScopeResolver | None = None,
        catalog: MessageCatalog | None = None,
        locale: str | None = None,
    ):
        self.resolver = resolver or EMPTY_RESOLVER
        self.catalog = catalog or DEFAULT_CATALOG
        self.locale = locale

    def validate(
        self,
        shape: Shape,
        data: Any,
        depth: int = 0,
        max_depth: int = DEFAULT_MAX_DEPTH,
        path: Sequence[PathSegment] = (),
    ) -> ValidationResult:
        """Validate data against a shape.

        Args:
            shape: The shape to validate against
            data: Input mapping (``None`` is treated as empty)
            depth: Current nesting depth
            max_depth: Deepest nesting allowed before ``depth_exceeded``
            path: Path of ``data`` within the root input

        Returns:
            ValidationResult with the accumulated issues and accepted params;
            at most one ``depth_exceeded`` issue is reported per call
        """
        result = self._validate_shape(shape, data, path=tuple(path), depth=depth, max_depth=max_depth)
        result.issues = single_depth_issue(result.issues)
        return result

    def _validate_shape(
        self, shape: Shape, data: Any, path: Path, depth: int, max_depth: int
    ) -> ValidationResult:
        if depth > max_depth:
            return ValidationResult.failure([self._depth_exceeded(path, depth, max_depth)])

        if data is None:
            data = {}
        if not is_mapping(data):
            return ValidationResult.failure(
                [self._type_invalid(None, data, "object", path)]
            )

        data = normalize_keys(data)
        issues: List[Issue] = []
        params: Dict[str, Any] = {}

        for spec in shape:
            field_issues, value = self._validate_field(spec, data, path, depth, max_depth)
            issues.extend(field_issues)
            if value is not NOT_SET:
                params[spec.name] = value  # type: ignore[index]

        for key in data:
            if key not in shape:
                issues.append(
                    self._issue(
                        IssueCode.FIELD_UNKNOWN,
                        path + (key,),
                        allowed=list(shape.names),
                        field=key,
                    )
                )

        return ValidationResult(issues=issues, params=params)

    def validate_union(
        self,
        union: UnionSpec,
        data: Any,
        depth: int = 0,
        max_depth: int = DEFAULT_MAX_DEPTH,
        path: Sequence[PathSegment] = (),
    ) -> ValidationResult:
        """Validate data against a union at the given path.

        The params of a successful result are the matched variant's output
        when it is a mapping, else ``{"value": output}``.
        """
        path = tuple(path)
        if depth > max_depth:
            return ValidationResult.failure([self._depth_exceeded(path, depth, max_depth)])

        issues, value = self._validate_union(None, data, union, path, depth, max_depth)
        if issues:
            return ValidationResult.failure(single_depth_issue(issues))
        if isinstance(value, dict):
            return ValidationResult.success(value)
        return ValidationResult.success({"value": value})

    # Per-field chain

    def _validate_field(
        self, spec: ParamSpec, data: Dict[str, Any], path: Path, depth: int, max_depth: int
    ) -> Outcome:
        name = spec.name
        field_path = path + (name,)  # type: ignore[operator]
        present = name in data
        value = data.get(name)  # type: ignore[arg-type]

        required_issue = self._check_required(spec, value, field_path)
        if required_issue is not None:
            return [required_issue], NOT_SET

        if not present and spec.has_default:
            value = copy.deepcopy(spec.default)
            present = True

        if value is None:
            if not present:
                return [], NOT_SET
            if not spec.nullable:
                return [
                    self._issue(
                        IssueCode.VALUE_NULL, field_path, field=name, type=spec.type_name
                    )
                ], NOT_SET
            return [], None

        return self._validate_value(spec, value, field_path, depth, max_depth)

    def _check_required(self, spec: ParamSpec, value: Any, field_path: Path) -> Issue | None:
        if spec.optional:
            return None

        if spec.primitive is PrimitiveType.BOOLEAN:
            missing = value is None
        else:
            missing = is_blank(value)
        if not missing:
            return None

        enum_values = self._resolve_enum(spec.enum)
        if enum_values is not None:
            return self._issue(
                IssueCode.VALUE_INVALID,
                field_path,
                actual=value,
                expected=list(enum_values),
                field=spec.name,
            )
        return self._issue(
            IssueCode.FIELD_MISSING, field_path, field=spec.name, type=spec.type_name
        )

    def _validate_value(
        self, spec: ParamSpec, value: Any, path: Path, depth: int, max_depth: int
    ) -> Outcome:
        """Checks shared by fields, array items and simple union variants."""
        enum_values = self._resolve_enum(spec.enum)
        if enum_values is not None and not enum_includes(enum_values, value):
            return [
                self._issue(
                    IssueCode.VALUE_INVALID,
                    path,
                    actual=value,
                    expected=list(enum_values),
                    field=spec.name,
                )
            ], NOT_SET

        content = spec.content

        if isinstance(content, Literal):
            if not same_value(value, content.value):
                return [
                    self._issue(
                        IssueCode.VALUE_INVALID,
                        path,
                        actual=value,
                        expected=content.value,
                        field=spec.name,
                    )
                ], NOT_SET
            return [], value

        if isinstance(content, UnionOf):
            return self._validate_union(spec.name, value, content.union, path, depth, max_depth)

        if isinstance(content, Reference):
            return self._validate_reference(spec.name, value, content.name, path, depth, max_depth)

        if isinstance(content, ObjectOf):
            if not is_mapping(value):
                return [self._type_invalid(spec.name, value, "object", path)], NOT_SET
            return self._validate_nested(content.shape, value, path, depth, max_depth)

        if isinstance(content, ArrayOf):
            if not is_sequence(value):
                return [self._type_invalid(spec.name, value, "array", path)], NOT_SET
            return self._validate_array(content, value, path, depth, max_depth)

        primitive = content.type
        if not matches(primitive, value):
            return [self._type_invalid(spec.name, value, primitive.value, path)], NOT_SET

        if primitive is PrimitiveType.STRING:
            bound_issue = self._check_string_length(spec, value, path)
            if bound_issue is not None:
                return [bound_issue], NOT_SET

        if primitive in NUMERIC_TYPES:
            bound_issue = self._check_numeric_range(spec, value, path)
            if bound_issue is not None:
                return [bound_issue], NOT_SET

        return [], value

    def _check_string_length(self, spec: ParamSpec, value: str, path: Path) -> Issue | None:
        if not value:
            return None
        if spec.min is not None and len(value) < spec.min:
            return self._issue(
                IssueCode.STRING_TOO_SHORT, path, actual=len(value), field=spec.name, min=spec.min
            )
        if spec.max is not None and len(value) > spec.max:
            return self._issue(
                IssueCode.STRING_TOO_LONG, path, actual=len(value), field=spec.name, max=spec.max
            )
        return None

    def _check_numeric_range(self, spec: ParamSpec, value: Any, path: Path) -> Issue | None:
        if not is_numeric(value):
            return None
        if spec.min is not None and value < spec.min:
            return self._issue(
                IssueCode.NUMBER_TOO_SMALL, path, actual=value, field=spec.name, min=spec.min
            )
        if spec.max is not None and value > spec.max:
            return self._issue(
                IssueCode.NUMBER_TOO_LARGE, path, actual=value, field=spec.name, max=spec.max
            )
        return None

    # Nested structures

    def _validate_nested(
        self, shape: Shape, value: Mapping[Any, Any], path: Path, depth: int, max_depth: int
    ) -> Outcome:
        result = self._validate_shape(shape, value, path, depth + 1, max_depth)
        if result.invalid:
            return result.issues, NOT_SET
        return [], result.params

    def _validate_reference(
        self, name: str | None, value: Any, type_name: str, path: Path, depth: int, max_depth: int
    ) -> Outcome:
        registration = self.resolver.resolve(type_name)
        if registration is None:
            logger.debug(f"Unresolved type '{type_name}' at {list(path)}; accepting value")
            return [], value

        if registration.is_union:
            # Each named union resolution counts as a level.
            union_depth = depth + 1
            if union_depth > max_depth:
                return [self._depth_exceeded(path, union_depth, max_depth)], NOT_SET
            return self._validate_union(
                name, value, registration.payload, path, union_depth, max_depth  # type: ignore[arg-type]
            )

        if not is_mapping(value):
            return [self._type_invalid(name, value, type_name, path)], NOT_SET
        return self._validate_nested(
            registration.payload, value, path, depth, max_depth  # type: ignore[arg-type]
        )

    def _validate_array(
        self, content: ArrayOf, items: Sequence[Any], path: Path, depth: int, max_depth: int
    ) -> Outcome:
        count = len(items)
        if content.max_items is not None and count > content.max_items:
            return [
                self._issue(IssueCode.ARRAY_TOO_LARGE, path, max=content.max_items, actual=count)
            ], NOT_SET
        if content.min_items is not None and count < content.min_items:
            return [
                self._issue(IssueCode.ARRAY_TOO_SMALL, path, min=content.min_items, actual=count)
            ], NOT_SET

        element = content.of
        if element is None:
            return [], list(items)

        # Items sit one level below the array.
        item_depth = depth + 1
        if count and item_depth > max_depth:
            return [self._depth_exceeded(path, item_depth, max_depth)], NOT_SET

        issues: List[Issue] = []
        values: List[Any] = []
        for index, item in enumerate(items):
            item_path = path + (index,)
            if item is None:
                if element.nullable:
                    values.append(None)
                else:
                    issues.append(
                        self._issue(
                            IssueCode.VALUE_NULL, item_path, index=index, type=element.type_name
                        )
                    )
                continue

            item_issues, item_value = self._validate_value(
                element, item, item_path, item_depth, max_depth
            )
            if item_issues:
                issues.extend(item_issues)
            else:
                values.append(item_value)

        if issues:
            return issues, NOT_SET
        return [], values

    # Unions

    def _validate_union(
        self, name: str | None, value: Any, union: UnionSpec, path: Path, depth: int, max_depth: int
    ) -> Outcome:
        discriminator = union.discriminator

        if discriminator is not None:
            if not is_mapping(value):
                return [self._type_invalid(name, value, "object", path)], NOT_SET

            value = normalize_keys(value)
            if discriminator in value:
                return self._validate_discriminated(
                    name, value, union, discriminator, path, depth, max_depth
                )

            if not self._discriminator_optional_in_all_variants(union, discriminator):
                return [
                    self._issue(
                        IssueCode.FIELD_MISSING, path + (discriminator,), field=discriminator
                    )
                ], NOT_SET

        if union.has_boolean_variant():
            parsed = parse_boolean(value)
            if parsed is not None:
                return [], parsed

        most_specific: Issue | None = None
        depth_issue: Issue | None = None
        for variant in union.variants:
            issues, variant_value = self._validate_variant(
                name, value, variant, path, depth, max_depth, exclude=discriminator
            )
            if not issues:
                return [], variant_value

            first = issues[0]
            if first.code is IssueCode.DEPTH_EXCEEDED:
                depth_issue = depth_issue or first
            elif first.code is IssueCode.FIELD_UNKNOWN:
                most_specific = first
            elif first.code is IssueCode.VALUE_INVALID and (
                most_specific is None or most_specific.code is not IssueCode.FIELD_UNKNOWN
            ):
                most_specific = first

        if depth_issue is not None:
            return [depth_issue], NOT_SET
        if most_specific is not None:
            return [most_specific], NOT_SET

        return [
            self._issue(
                IssueCode.TYPE_INVALID,
                path,
                actual=type_name_of(value),
                expected=" | ".join(union.type_names),
                field=name,
            )
        ], NOT_SET

    def _validate_discriminated(
        self,
        name: str | None,
        value: Dict[str, Any],
        union: UnionSpec,
        discriminator: str,
        path: Path,
        depth: int,
        max_depth: int,
    ) -> Outcome:
        tag = value[discriminator]
        variant = union.variant_for(tag)
        if variant is None:
            return [
                self._issue(
                    IssueCode.VALUE_INVALID,
                    path + (discriminator,),
                    actual=tag,
                    expected=union.tags,
                    field=discriminator,
                )
            ], NOT_SET

        remainder = {key: item for key, item in value.items() if key != discriminator}
        issues, variant_value = self._validate_variant(
            name, remainder, variant, path, depth, max_depth, exclude=discriminator
        )
        if issues:
            return issues, NOT_SET

        if isinstance(variant_value, dict):
            variant_value = {**variant_value, discriminator: tag}
        return [], variant_value

    def _validate_variant(
        self,
        name: str | None,
        value: Any,
        variant: VariantSpec,
        path: Path,
        depth: int,
        max_depth: int,
        exclude: str | None = None,
    ) -> Outcome:
        content = variant.content

        if isinstance(content, (ObjectOf, Reference)):
            shape = self.resolver.variant_shape(variant)
            if shape is not None:
                if not is_mapping(value):
                    return [self._type_invalid(name, value, content.type_name, path)], NOT_SET
                if exclude is not None:
                    shape = shape.without(exclude)
                return self._validate_nested(shape, value, path, depth, max_depth)

        spec = ParamSpec(name, content, enum=variant.enum)
        return self._validate_value(spec, value, path, depth, max_depth)

    def _discriminator_optional_in_all_variants(self, union: UnionSpec, discriminator: str) -> bool:
        for variant in union.variants:
            shape = self.resolver.variant_shape(variant)
            if shape is None:
                return False
            spec = shape.get(discriminator)
            if spec is None or not spec.optional:
                return False
        return True

    # Helpers

    def _resolve_enum(self, enum: Tuple[Any, ...] | EnumRef | None) -> Tuple[Any, ...] | None:
        if enum is None:
            return None
        if isinstance(enum, EnumRef):
            values = self.resolver.resolve_enum(enum.name)
            if values is None:
                logger.debug(f"Unresolved enum '{enum.name}'; skipping enum check")
            return values
        return enum

    def _depth_exceeded(self, path: Path, depth: int, max_depth: int) -> Issue:
        return self._issue(IssueCode.DEPTH_EXCEEDED, path, max=max_depth, depth=depth)

    def _type_invalid(self, name: str | None, value: Any, expected: str, path: Path) -> Issue:
        return self._issue(
            IssueCode.TYPE_INVALID,
            path,
            actual=type_name_of(value),
            expected=expected,
            field=name,
        )

    def _issue(self, code: IssueCode, path: Path, **meta: Any) -> Issue:
        return Issue(
            code=code,
            detail=self.catalog.detail(code, self.locale),
            path=tuple(path),
            meta=meta,
        )


def validate(
    shape: Shape,
    data: Any,
    depth: int = 0,
    max_depth: int = DEFAULT_MAX_DEPTH,
    path: Sequence[PathSegment] = (),
    resolver: ScopeResolver | None = None,
) -> ValidationResult:
    """Validate with a one-off Validator."""
    return Validator(resolver).validate(shape, data, depth=depth, max_depth=max_depth, path=path)
