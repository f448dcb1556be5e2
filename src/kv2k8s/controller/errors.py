# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/kv2k8s/controller/errors.py


class ReconcileError(RuntimeError):
    """Base class for reconciliation failures."""


class OwnershipConflictError(ReconcileError):
    """An output object exists but is not controlled by the declaring resource."""


class OutputNotReadyError(ReconcileError):
    """The output object has not been created by the structural pass yet."""


class ConfigurationError(ReconcileError):
    """
    The declaring resource asks for something that can never succeed
    without an operator changing it.
    """


class UnsupportedObjectTypeError(ConfigurationError):
    pass


class TransformError(ConfigurationError):
    pass
