# core/exceptions.py

class CsrError(Exception):
    """Base exception for CSR assembly errors."""
    pass

class PreconditionError(CsrError, ValueError):
    """Raised when caller-supplied input violates an operation's contract."""
    pass

class PatternMismatchError(PreconditionError):
    """Raised when refresh indices do not match the assembled pattern."""
    pass

class AssemblyStateError(CsrError):
    """Raised when an operation is called out of lifecycle order."""
    pass

class ConsistencyError(CsrError):
    """Raised when an internal invariant is found broken."""
    pass

class ConfigError(CsrError):
    """Raised when an input file cannot be read or fails schema validation."""
    pass
