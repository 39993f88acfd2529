"""
JSON Schema → typed parameter record.

Each tool's ``inputSchema`` is compiled once, at registration, into a pydantic
model. Dispatch then resolves the untyped argument bag into that model in a
single ``model_validate`` call: required fields checked, types enforced,
defaults applied, unknown extras ignored.

Only the structural subset tool catalogs actually use is supported (see
``_property_type``); anything else is accepted as ``Any``.
"""

from __future__ import annotations

import keyword
import re
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, ValidationError, create_model

from toolkit.runtime.errors import FatalConfigError

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")
_NON_IDENT = re.compile(r"\W")

_PARAMS_CONFIG = ConfigDict(
  strict=True,
  extra="ignore",
  frozen=True,
  protected_namespaces=(),
)


def attribute_name(wire_name: str) -> str:
  """``maxResults`` → ``max_results``; keywords and BaseModel attrs get a trailing ``_``."""
  name = _NON_IDENT.sub("_", _CAMEL_BOUNDARY.sub("_", wire_name)).lower().lstrip("_")
  if not name or name[0].isdigit():
    name = f"p_{name}"
  if keyword.iskeyword(name) or hasattr(BaseModel, name):
    name += "_"
  return name


def _model_name(tool_name: str) -> str:
  parts = re.split(r"[^0-9A-Za-z]+", tool_name)
  return "".join(p[:1].upper() + p[1:] for p in parts if p) + "Params"


def _property_type(tool: str, field: str, prop: Any) -> Any:
  if not isinstance(prop, dict):
    raise FatalConfigError(f"Tool '{tool}': property '{field}' must be an object schema")

  if "enum" in prop:
    values = prop["enum"]
    if not isinstance(values, list) or not values:
      raise FatalConfigError(f"Tool '{tool}': property '{field}' has an empty enum")
    return Literal[tuple(values)]  # type: ignore[valid-type]

  kind = prop.get("type")
  if isinstance(kind, list):
    members = [_property_type(tool, field, {**prop, "type": k}) for k in kind]
    return Union[tuple(members)] if len(members) > 1 else members[0]
  if kind == "string":
    return _constrained(str, prop, "minLength", "maxLength", "min_length", "max_length")
  if kind == "integer":
    # JSON Schema counts 10.0 as an integer
    return Annotated[_constrained(int, prop, "minimum", "maximum", "ge", "le"), BeforeValidator(_integral)]
  if kind == "number":
    return Union[
      _constrained(int, prop, "minimum", "maximum", "ge", "le"),
      _constrained(float, prop, "minimum", "maximum", "ge", "le"),
    ]
  if kind == "boolean":
    return bool
  if kind == "null":
    return type(None)
  if kind == "array":
    items = prop.get("items")
    item_type = _property_type(tool, f"{field}[]", items) if isinstance(items, dict) else Any
    return list[item_type]  # type: ignore[valid-type]
  if kind == "object":
    return dict[str, Any]
  # oneOf / anyOf / untyped
  return Any


def _integral(value: Any) -> Any:
  if isinstance(value, float) and value.is_integer():
    return int(value)
  return value


def _constrained(base: type, prop: dict[str, Any], low: str, high: str, low_kw: str, high_kw: str) -> Any:
  bounds: dict[str, Any] = {}
  if low in prop:
    bounds[low_kw] = prop[low]
  if high in prop:
    bounds[high_kw] = prop[high]
  return Annotated[base, Field(**bounds)] if bounds else base


def _field_info(prop: dict[str, Any], wire_name: str, required: bool) -> Any:
  kwargs: dict[str, Any] = {"alias": wire_name}
  if "description" in prop:
    kwargs["description"] = prop["description"]
  if required:
    return Field(..., **kwargs)
  return Field(default=prop.get("default"), **kwargs)


def compile_input_model(tool_name: str, schema: Any) -> type[BaseModel]:
  """Build the parameter model for ``tool_name`` from its input schema.

  Raises FatalConfigError when the schema is not an object schema or lists a
  required field it does not declare.
  """
  if not isinstance(schema, dict) or schema.get("type", "object") != "object":
    raise FatalConfigError(f"Tool '{tool_name}': inputSchema must be a JSON object schema")

  properties = schema.get("properties") or {}
  required = schema.get("required") or []
  if not isinstance(properties, dict):
    raise FatalConfigError(f"Tool '{tool_name}': 'properties' must be an object")
  if not isinstance(required, list):
    raise FatalConfigError(f"Tool '{tool_name}': 'required' must be a list")
  undeclared = [r for r in required if r not in properties]
  if undeclared:
    raise FatalConfigError(
      f"Tool '{tool_name}': required field(s) not declared in properties: {', '.join(map(str, undeclared))}"
    )

  fields: dict[str, Any] = {}
  for wire_name, prop in properties.items():
    attr = attribute_name(wire_name)
    if attr in fields:
      raise FatalConfigError(f"Tool '{tool_name}': properties collide on attribute '{attr}'")
    annotation = _property_type(tool_name, wire_name, prop)
    is_required = wire_name in required
    if not is_required and "default" not in prop:
      annotation = Optional[annotation]
    fields[attr] = (annotation, _field_info(prop, wire_name, is_required))

  return create_model(_model_name(tool_name), __config__=_PARAMS_CONFIG, **fields)


def describe_validation_error(exc: ValidationError) -> tuple[str, str]:
  """Return ``(field, message)`` for the first error in ``exc``."""
  errors = exc.errors()
  if not errors:
    return "arguments", "Invalid arguments"
  first = errors[0]
  loc = first.get("loc") or ()
  field = str(loc[0]) if loc else "arguments"
  if first.get("type") == "missing":
    return field, f"Missing required parameter: {field}"
  return field, f"Invalid parameter {field}: {first.get('msg', 'invalid value')}"
