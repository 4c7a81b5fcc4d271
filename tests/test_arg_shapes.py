from app.core.errors import ApiError
from app.services.arg_shapes import build_arg_shapes, coerce_args
from app.services.registry import FieldRegistry

REGISTRY = FieldRegistry.from_rows(
    [
        {"id": 1, "shortname": "phone", "label": "Phone", "association": "meta", "field_type": "textfield"},
        {"id": 2, "shortname": "website", "label": "Website", "association": "meta", "field_type": "url"},
        {"id": 3, "shortname": "region", "association": "region", "field_type": "select"},
    ]
)


def _by_name(shapes):
    return {s.name: s for s in shapes}


def test_dynamic_shapes_follow_registry():
    shapes = _by_name(build_arg_shapes(REGISTRY, "create"))
    assert shapes["phone"].types == ("string",)
    assert shapes["website"].types == ("array", "string")
    assert "region" not in shapes
    assert shapes["id"].required is False
    assert _by_name(build_arg_shapes(REGISTRY, "update"))["id"].required is True


def test_shapes_are_memoized_per_snapshot():
    first = build_arg_shapes(REGISTRY, "update")
    assert build_arg_shapes(REGISTRY, "update") is first

    grown = FieldRegistry.from_rows(
        REGISTRY.as_payload() + [{"id": 4, "shortname": "fax", "association": "meta", "field_type": "textfield"}]
    )
    assert "fax" in _by_name(build_arg_shapes(grown, "update"))
    assert "fax" not in _by_name(first)


def test_required_id_missing():
    err = coerce_args({"title": "x"}, build_arg_shapes(REGISTRY, "update"))
    assert isinstance(err, ApiError)
    assert err.code == "rest_missing_callback_param"
    assert err.extra["params"] == ["id"]


def test_integer_strings_are_coerced():
    args = coerce_args({"id": "12", "featured_image": 4, "phone": 5550100}, build_arg_shapes(REGISTRY, "update"))
    assert args == {"id": 12, "featured_image": 4, "phone": "5550100"}


def test_type_mismatch_is_rejected():
    shapes = build_arg_shapes(REGISTRY, "create")
    assert coerce_args({"featured_image": "abc"}, shapes).code == "rest_invalid_param"
    assert coerce_args({"phone": ["a"]}, shapes).code == "rest_invalid_param"
    assert coerce_args({"meta": "x"}, shapes).code == "rest_invalid_param"


def test_union_and_undeclared_args_pass_through():
    args = coerce_args({"website": ["https://x.test"], "tags": "[]", "fax": "1"}, build_arg_shapes(REGISTRY, "create"))
    assert args == {"website": ["https://x.test"], "tags": "[]", "fax": "1"}
