"""Tenant aware blob storage: prefixed keys, sharded tenant directories and signed references."""
