# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/kv2k8s/vault/errors.py


class VaultError(RuntimeError):
    """Base class for Key Vault failures."""


class VaultObjectNotFoundError(VaultError):
    """The vault object (or version) does not exist."""


class VaultTransientError(VaultError):
    """Network, throttling or auth failures talking to Key Vault."""
