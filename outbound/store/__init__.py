"""Persistence seams: tenants, channel credentials and the mapping ledger."""

from .base import CredentialStore, MappingLedger, TenantDirectory
from .memory import InMemoryCredentialStore, InMemoryMappingLedger, InMemoryTenantDirectory

__all__ = [
    "CredentialStore",
    "InMemoryCredentialStore",
    "InMemoryMappingLedger",
    "InMemoryTenantDirectory",
    "MappingLedger",
    "TenantDirectory",
]
