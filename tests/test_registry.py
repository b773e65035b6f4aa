"""
Tests for the module registry and error reporting.

These tests verify:
1. Each module id resolves to its codec
2. Unknown ids fail with a structured error that is also a KeyError
3. Every registered codec exposes the full operation set
"""

import pytest

from iotrace.core.errors import (
    CodecError,
    ErrorCode,
    TruncatedRecord,
    UnknownModule,
    UnsupportedVersion,
)
from iotrace.formats import ModuleId
from iotrace.modules import (
    LustreModule,
    ModuleCodec,
    StdioModule,
    lookup,
    registered_modules,
)


class TestLookup:
    """Module id -> codec."""

    def test_lustre(self):
        codec = lookup(ModuleId.LUSTRE)
        assert isinstance(codec, LustreModule)
        assert codec.name == 'LUSTRE'
        assert codec.current_version == 2

    def test_stdio(self):
        codec = lookup(ModuleId.STDIO)
        assert isinstance(codec, StdioModule)
        assert codec.name == 'STDIO'

    def test_same_instance(self):
        assert lookup(ModuleId.STDIO) is lookup(ModuleId.STDIO)

    def test_registered_modules(self):
        assert registered_modules() == [ModuleId.LUSTRE, ModuleId.STDIO]

    @pytest.mark.parametrize("module_id", [0, 1, 7, 10, 255])
    def test_unknown_module(self, module_id):
        with pytest.raises(UnknownModule) as exc_info:
            lookup(module_id)
        assert exc_info.value.code == ErrorCode.E1010_UNKNOWN_MODULE
        assert exc_info.value.context == {'registered': [8, 9]}

    def test_unknown_module_is_key_error(self):
        with pytest.raises(KeyError):
            lookup(42)

    @pytest.mark.parametrize("module_id", [ModuleId.LUSTRE, ModuleId.STDIO])
    def test_operation_set(self, module_id):
        codec = lookup(module_id)
        assert isinstance(codec, ModuleCodec)
        for op in ('decode', 'encode', 'print_record', 'print_description',
                   'print_diff', 'aggregate'):
            assert callable(getattr(codec, op))

    def test_stdio_description_ends_with_header(self):
        lines = lookup(ModuleId.STDIO).print_description()
        assert lines[-1].startswith('#<module>\t<rank>')


class TestErrors:
    """Structured codec errors."""

    def test_message_includes_detail_and_context(self):
        err = TruncatedRecord("short OST id read", context={'expected': 24, 'actual': 16})
        assert err.message.startswith('Record truncated or incomplete: short OST id read')
        assert "'expected': 24" in str(err)

    def test_to_dict(self):
        err = UnsupportedVersion("LUSTRE version 3")
        data = err.to_dict()
        assert data['code'] == 'E1002'
        assert data['severity'] == 'error'
        assert data['recoverable'] is False
        assert data['context'] is None

    def test_hierarchy(self):
        assert issubclass(TruncatedRecord, CodecError)
        assert issubclass(UnknownModule, CodecError)

    def test_unknown_module_str(self):
        err = UnknownModule("module id 3")
        assert str(err) == 'No codec registered for module: module id 3'
