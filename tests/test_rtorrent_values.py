from vibetorrent.rtorrent.values import Value, ValueKind


def test_as_long_accepts_every_integer_kind():
    assert Value.integer(7).as_long() == 7
    assert Value.i4(-3).as_long() == -3
    assert Value.i8(5_000_000_000).as_long() == 5_000_000_000
    assert Value.boolean(True).as_long() == 1


def test_projections_default_instead_of_raising():
    text = Value.string("abc")
    assert text.as_long() == 0
    assert text.as_array() == ()
    assert text.as_struct() == {}
    assert text.as_bytes() == b""
    assert Value.i8(1).as_string() == ""
    assert Value.array([]).as_float() == 0.0
    assert Value.double(1.5).as_bool() is False


def test_from_python_picks_wire_kinds():
    assert Value.from_python(True).kind is ValueKind.BOOLEAN
    assert Value.from_python(12).kind is ValueKind.I4
    assert Value.from_python(2**40).kind is ValueKind.I8
    assert Value.from_python(b"\x00\x01").kind is ValueKind.BASE64
    assert Value.from_python(None) == Value.string("")
    nested = Value.from_python(["a", 1, {"k": [2.5]}])
    assert nested.kind is ValueKind.ARRAY
    assert nested.to_python() == ["a", 1, {"k": [2.5]}]


def test_struct_keeps_member_order_and_is_hashable():
    value = Value.struct({"b": Value.i4(1), "a": Value.i4(2)})
    assert list(value.as_struct()) == ["b", "a"]
    assert hash(value) == hash(Value.struct({"b": Value.i4(1), "a": Value.i4(2)}))


def test_from_python_passes_values_through():
    original = Value.i8(3)
    assert Value.from_python(original) is original
