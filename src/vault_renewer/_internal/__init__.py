"""
Modules internal to vault-renewer.

This package contains modules that are not considered part of vault-renewer's
public API. They may be changed without updating vault-renewer's major
version.
"""
