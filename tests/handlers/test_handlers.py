# tests/handlers/test_handlers.py
from __future__ import annotations

import base64
import datetime
import json

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import NameOID

from kv2k8s.api.models import KeyVaultSecret, VaultObjectType
from kv2k8s.controller.errors import ConfigurationError, TransformError, UnsupportedObjectTypeError
from kv2k8s.handlers.certificate import CertificateHandler
from kv2k8s.handlers.key import KeyHandler
from kv2k8s.handlers.multikey import MultiKeySecretHandler
from kv2k8s.handlers.registry import HANDLERS, build_handler
from kv2k8s.handlers.secret import SecretHandler
from kv2k8s.handlers.transformers import Transformer
from kv2k8s.vault.certificate import Certificate


def _self_signed():
    key = ec.generate_private_key(ec.SECP256R1())
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, "kv2k8s.test")])
    now = datetime.datetime.now(datetime.timezone.utc)
    cert = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now)
        .not_valid_after(now + datetime.timedelta(days=1))
        .sign(key, hashes.SHA256())
    )
    return cert, key


def _pem_bundle(cert, key) -> str:
    return (
        cert.public_bytes(serialization.Encoding.PEM)
        + key.private_bytes(
            serialization.Encoding.PEM,
            serialization.PrivateFormat.PKCS8,
            serialization.NoEncryption(),
        )
    ).decode("ascii")


def _kvs(make_kvs, **kw):
    return KeyVaultSecret.from_object(make_kvs(**kw))


# ---- registry ----

def test_every_object_type_has_a_handler():
    assert set(HANDLERS) == set(VaultObjectType)


def test_build_handler_selects_by_type(make_kvs, vault):
    cases = {
        "secret": SecretHandler,
        "certificate": CertificateHandler,
        "key": KeyHandler,
        "multi-key-value-secret": MultiKeySecretHandler,
    }
    for object_type, cls in cases.items():
        kvs = _kvs(make_kvs, object_type=object_type, secret={"name": "out", "dataKey": "v"})
        assert isinstance(build_handler(kvs, vault), cls)


def test_unknown_object_type_is_a_configuration_error(make_kvs, vault):
    kvs = _kvs(make_kvs, object_type="blob", secret={"name": "out", "dataKey": "v"})
    with pytest.raises(UnsupportedObjectTypeError) as ei:
        build_handler(kvs, vault)
    assert isinstance(ei.value, ConfigurationError)
    assert "blob" in str(ei.value)


def test_unknown_transform_fails_before_fetching(make_kvs, vault):
    kvs = _kvs(make_kvs, secret={"name": "out", "dataKey": "v"}, transform=["trim", "rot13"])
    with pytest.raises(TransformError):
        build_handler(kvs, vault)
    assert vault.calls == []


# ---- transforms ----

def test_transform_chain_applies_in_order():
    encoded = base64.b64encode(b"hunter2").decode()
    assert Transformer(["trim", "base64decode"])(f"  {encoded}\n") == "hunter2"
    assert Transformer(["base64encode"])("hunter2") == encoded
    assert Transformer([])(" raw ") == " raw "


def test_base64decode_rejects_garbage():
    with pytest.raises(TransformError):
        Transformer(["base64decode"])("not base64!!")


# ---- secret handler ----

def test_secret_handler_emits_value_under_data_key(make_kvs, vault):
    vault.secrets["db-password"] = "p@ss"
    kvs = _kvs(make_kvs, secret={"name": "foo-secret", "dataKey": "password"}, config_map={"name": "foo-cm", "dataKey": "pw"})
    h = build_handler(kvs, vault)
    assert h.produce_secret_data() == {"password": b"p@ss"}
    assert h.produce_config_map_data() == {"pw": "p@ss"}
    assert h.replaces_data is False


def test_secret_handler_applies_transforms(make_kvs, vault):
    vault.secrets["db-password"] = "  p@ss  "
    kvs = _kvs(make_kvs, secret={"name": "s", "dataKey": "password"}, transform=["trim"])
    assert build_handler(kvs, vault).produce_secret_data() == {"password": b"p@ss"}


def test_secret_handler_requires_data_key(make_kvs, vault):
    vault.secrets["db-password"] = "p@ss"
    kvs = _kvs(make_kvs, secret={"name": "s"})
    with pytest.raises(ConfigurationError):
        build_handler(kvs, vault).produce_secret_data()


def test_secret_handler_docker_config(make_kvs, vault):
    doc = json.dumps({"auths": {"registry.example": {"auth": "dXNlcjpwYXNz"}}})
    vault.secrets["db-password"] = doc
    kvs = _kvs(make_kvs, secret={"name": "pull", "type": "kubernetes.io/dockerconfigjson"})
    assert build_handler(kvs, vault).produce_secret_data() == {".dockerconfigjson": doc.encode()}


def test_secret_handler_tls_from_pem_bundle(make_kvs, vault):
    cert, key = _self_signed()
    vault.secrets["db-password"] = _pem_bundle(cert, key)
    kvs = _kvs(make_kvs, secret={"name": "tls", "type": "kubernetes.io/tls"})
    data = build_handler(kvs, vault).produce_secret_data()
    assert set(data) == {"tls.crt", "tls.key"}
    assert x509.load_pem_x509_certificate(data["tls.crt"]) == cert
    assert b"PRIVATE KEY" in data["tls.key"]


def test_secret_handler_tls_without_key_is_configuration_error(make_kvs, vault):
    cert, _ = _self_signed()
    vault.secrets["db-password"] = cert.public_bytes(serialization.Encoding.PEM).decode()
    kvs = _kvs(make_kvs, secret={"name": "tls", "type": "kubernetes.io/tls"})
    with pytest.raises(ConfigurationError):
        build_handler(kvs, vault).produce_secret_data()


# ---- certificate handler ----

def test_certificate_handler_tls_exports_key(make_kvs, vault):
    cert, key = _self_signed()
    vault.certificates["db-password"] = Certificate(certificate=cert, private_key=key)
    kvs = _kvs(make_kvs, object_type="certificate", secret={"name": "tls", "type": "kubernetes.io/tls"})
    data = build_handler(kvs, vault).produce_secret_data()
    assert data["tls.crt"] == cert.public_bytes(serialization.Encoding.PEM)
    loaded = serialization.load_pem_private_key(data["tls.key"], password=None)
    assert loaded.public_key().public_numbers() == key.public_key().public_numbers()


def test_certificate_handler_public_pem_under_data_key(make_kvs, vault):
    cert, _ = _self_signed()
    vault.certificates["db-password"] = Certificate(certificate=cert)
    kvs = _kvs(
        make_kvs,
        object_type="certificate",
        secret={"name": "s", "dataKey": "ca.crt"},
        config_map={"name": "cm", "dataKey": "ca.crt"},
    )
    h = build_handler(kvs, vault)
    pem = cert.public_bytes(serialization.Encoding.PEM)
    assert h.produce_secret_data() == {"ca.crt": pem}
    assert h.produce_config_map_data() == {"ca.crt": pem.decode()}


# ---- key handler ----

def test_key_handler_emits_jwk(make_kvs, vault):
    jwk = json.dumps({"kid": "https://my-vault/keys/k/1", "kty": "RSA", "n": "abc", "e": "AQAB"}, sort_keys=True)
    vault.keys["db-password"] = jwk
    kvs = _kvs(make_kvs, object_type="key", secret={"name": "s", "dataKey": "key.json"})
    assert build_handler(kvs, vault).produce_secret_data() == {"key.json": jwk.encode()}


# ---- multi-key handler ----

def test_multikey_json_replaces_data(make_kvs, vault):
    vault.secrets["db-password"] = json.dumps({"user": "admin", "password": "p@ss", "port": "5432"})
    kvs = _kvs(
        make_kvs,
        object_type="multi-key-value-secret",
        content_type="application/x-json",
        secret={"name": "s"},
    )
    h = build_handler(kvs, vault)
    assert h.replaces_data is True
    assert h.produce_secret_data() == {"user": b"admin", "password": b"p@ss", "port": b"5432"}


def test_multikey_yaml_config_map(make_kvs, vault):
    vault.secrets["db-password"] = "user: admin\npassword: p@ss\n"
    kvs = _kvs(
        make_kvs,
        object_type="multi-key-value-secret",
        content_type="application/x-yaml",
        config_map={"name": "cm"},
    )
    assert build_handler(kvs, vault).produce_config_map_data() == {"user": "admin", "password": "p@ss"}


@pytest.mark.parametrize(
    "content_type,raw",
    [
        (None, '{"a": "b"}'),
        ("text/plain", '{"a": "b"}'),
        ("application/x-json", "{not json"),
        ("application/x-json", '["a", "b"]'),
    ],
)
def test_multikey_bad_input_is_configuration_error(make_kvs, vault, content_type, raw):
    vault.secrets["db-password"] = raw
    kvs = _kvs(
        make_kvs,
        object_type="multi-key-value-secret",
        content_type=content_type,
        secret={"name": "s"},
    )
    with pytest.raises(ConfigurationError):
        build_handler(kvs, vault).produce_secret_data()


@pytest.mark.parametrize(
    "raw",
    [
        '{"enabled": true}',
        '{"ratio": 1.0}',
        '{"port": 5432}',
        '{"nested": {"a": "b"}}',
        '{"list": ["a", "b"]}',
    ],
)
def test_multikey_json_rejects_non_string_values(make_kvs, vault, raw):
    vault.secrets["db-password"] = raw
    kvs = _kvs(
        make_kvs,
        object_type="multi-key-value-secret",
        content_type="application/x-json",
        secret={"name": "s"},
    )
    with pytest.raises(ConfigurationError) as ei:
        build_handler(kvs, vault).produce_secret_data()
    assert "must be a string" in str(ei.value)


def test_multikey_yaml_keeps_scalars_as_written(make_kvs, vault):
    vault.secrets["db-password"] = "enabled: true\nport: 0x1F\nratio: 1.0\nempty:\n"
    kvs = _kvs(
        make_kvs,
        object_type="multi-key-value-secret",
        content_type="application/x-yaml",
        config_map={"name": "cm"},
    )
    assert build_handler(kvs, vault).produce_config_map_data() == {
        "enabled": "true",
        "port": "0x1F",
        "ratio": "1.0",
        "empty": "",
    }


def test_multikey_yaml_rejects_nested_values(make_kvs, vault):
    vault.secrets["db-password"] = "db:\n  user: admin\n"
    kvs = _kvs(
        make_kvs,
        object_type="multi-key-value-secret",
        content_type="application/x-yaml",
        secret={"name": "s"},
    )
    with pytest.raises(ConfigurationError):
        build_handler(kvs, vault).produce_secret_data()
