"""Combine MAP partials into the intermediate data handed to REDUCE.

Shape handling:
  ARRAY:  {key: [...]}              -> concatenate every partial's list
  NESTED: {key: {sub: [...], ...}}  -> concatenate each declared array sub-field;
                                       other sub-fields pass through from the
                                       first partial that has them
  SCALAR: {key: "..."}              -> ordered list of non-empty strings

De-duplication is left to REDUCE. Partials are consumed in the order given,
which callers keep equal to chunk submission order.
"""

from typing import Any, Dict, List, Sequence

from .models import CategorySchema, SchemaShape, UnsupportedSchemaShapeError


def combine_partial_results(
    category_schema: CategorySchema,
    partials: Sequence[Dict[str, Any]],
) -> Dict[str, Any]:
    """Merge partial results according to the category's declared shape.

    Raises:
        UnsupportedSchemaShapeError: shape has no combination rule
    """
    shape = category_schema.shape
    key = category_schema.field_name

    if shape is SchemaShape.ARRAY:
        return {key: _combine_arrays(key, partials)}
    elif shape is SchemaShape.NESTED:
        return {key: _combine_nested(key, category_schema.nested_field_names, partials)}
    elif shape is SchemaShape.SCALAR:
        return {key: _collect_strings(key, partials)}

    raise UnsupportedSchemaShapeError(category_schema.category, shape)


def _combine_arrays(key: str, partials: Sequence[Dict[str, Any]]) -> List[Any]:
    combined: List[Any] = []
    for partial in partials:
        data = partial.get(key)
        if isinstance(data, list):
            combined.extend(data)
    return combined


def _combine_nested(
    key: str,
    array_fields: Sequence[str],
    partials: Sequence[Dict[str, Any]],
) -> Dict[str, Any]:
    merged: Dict[str, Any] = {name: [] for name in array_fields}

    for partial in partials:
        nested = partial.get(key)
        if not isinstance(nested, dict):
            continue
        for name, value in nested.items():
            if name in array_fields:
                if isinstance(value, list):
                    merged[name].extend(value)
            elif name not in merged and value is not None:
                merged[name] = value

    return merged


def _collect_strings(key: str, partials: Sequence[Dict[str, Any]]) -> List[str]:
    collected: List[str] = []
    for partial in partials:
        value = partial.get(key)
        if isinstance(value, str) and value.strip():
            collected.append(value)
    return collected
