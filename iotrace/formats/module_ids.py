"""
Module identifier constants.

Each instrumentation module writes its records into its own region of the
log, tagged with one of these ids. The ids match the on-disk module table
of the log container.
"""


class ModuleId:
    """Module identifier constants."""

    # Lustre file layout records (variable length)
    LUSTRE = 8

    # Standard I/O library counters (fixed length)
    STDIO = 9

    @classmethod
    def name(cls, module_id: int) -> str:
        """Get the module name used as the first column of printed counters."""
        names = {
            cls.LUSTRE: 'LUSTRE',
            cls.STDIO: 'STDIO',
        }
        return names.get(module_id, f'UNKNOWN({module_id})')

    @classmethod
    def from_name(cls, name: str) -> int:
        """Resolve a module name (case-insensitive) to its id."""
        ids = {
            'LUSTRE': cls.LUSTRE,
            'STDIO': cls.STDIO,
        }
        try:
            return ids[name.upper()]
        except KeyError:
            raise ValueError(f"Unknown module name: {name!r}") from None

    @classmethod
    def is_valid(cls, module_id: int) -> bool:
        """Check if module id is known."""
        return module_id in (cls.LUSTRE, cls.STDIO)
