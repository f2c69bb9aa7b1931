# Copyright (c) 2023-2025, HaiyangLi <quantocean.li at gmail dot com>
# SPDX-License-Identifier: Apache-2.0

from sectionkit._errors import (
    MutationError,
    SectionKitError,
    SerializerClosedError,
)


class TestSectionKitError:
    def test_default_message(self):
        err = SerializerClosedError()
        assert err.message == "Mutation serializer is closed"
        assert str(err) == err.message
        assert err.details == {}
        assert isinstance(err, SectionKitError)

    def test_to_dict(self):
        err = SectionKitError("boom", details={"k": 1})
        assert err.to_dict() == {
            "error": "SectionKitError",
            "message": "boom",
            "details": {"k": 1},
        }

    def test_to_dict_omits_empty_details(self):
        assert "details" not in SectionKitError("x").to_dict()

    def test_cause(self):
        cause = KeyError("missing")
        err = SectionKitError("wrapped", cause=cause)
        assert err.get_cause() is cause
        assert err.to_dict(include_cause=True)["cause"] == repr(cause)
        assert "cause" not in err.to_dict()


class TestMutationError:
    def test_from_exception(self):
        exc = ValueError("bad value")
        err = MutationError.from_exception(exc, label="append_objects")
        assert err.message == "bad value"
        assert err.details == {"type": "ValueError", "operation": "append_objects"}
        assert err.__cause__ is exc

    def test_from_exception_without_message(self):
        err = MutationError.from_exception(RuntimeError())
        assert err.message == "Mutation failed"
        assert err.details == {"type": "RuntimeError"}
