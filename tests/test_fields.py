from dac.core.fields import FieldResolver, default_resolver, to_camel_case, to_snake_case


def test_created_at_variants():
    assert default_resolver.resolve({"createdAt": "a"}, "createdAt") == "a"
    assert default_resolver.resolve({"created_at": "b"}, "createdAt") == "b"
    assert default_resolver.resolve({"createdDate": "c"}, "createdAt") == "c"
    assert default_resolver.resolve({"date": "d"}, "createdAt") == "d"


def test_first_present_variant_wins_and_none_counts_as_absent():
    record = {"createdAt": None, "created_at": "2024-01-01"}
    assert default_resolver.resolve(record, "createdAt") == "2024-01-01"


def test_falsy_values_are_present():
    assert default_resolver.resolve({"isActive": False, "active": True}, "isActive") is False
    assert default_resolver.resolve({"total": 0, "count": 7}, "total") == 0


def test_dotted_variant_walks_nested_records():
    record = {"company": {"id": "c-1", "name": "Acme"}}
    assert default_resolver.resolve(record, "companyId") == "c-1"
    assert default_resolver.resolve(record, "companyName") == "Acme"


def test_undeclared_field_falls_back_to_case_spellings():
    assert default_resolver.resolve({"gst_number": "X"}, "gstNumber") == "X"
    assert default_resolver.resolve({"panNumber": "Y"}, "pan_number") == "Y"
    assert default_resolver.resolve({}, "gstNumber", default="-") == "-"


def test_extra_variants_take_priority():
    resolver = FieldResolver({"createdAt": ("submittedAt",)})
    record = {"submittedAt": "s", "createdAt": "c"}

    assert resolver.resolve(record, "createdAt") == "s"
    assert resolver.variants("createdAt")[0] == "submittedAt"
    assert "created_at" in resolver.variants("createdAt")


def test_project_and_has():
    record = {"_id": "1", "is_active": True}

    assert default_resolver.project(record, ["id", "isActive", "name"]) == {"id": "1", "isActive": True, "name": None}
    assert default_resolver.has(record, "id")
    assert not default_resolver.has(record, "name")
    assert default_resolver.resolve(["not", "a", "mapping"], "id") is None


def test_case_helpers():
    assert to_snake_case("totalPages") == "total_pages"
    assert to_camel_case("total_pages") == "totalPages"
