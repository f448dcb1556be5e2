from __future__ import annotations

import base64
import datetime
import json
from types import SimpleNamespace

import pytest
from azure.core.exceptions import HttpResponseError, ResourceNotFoundError
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.serialization import pkcs12
from cryptography.x509.oid import NameOID

from kv2k8s.api.models import VaultRef
from kv2k8s.vault.certificate import Certificate
from kv2k8s.vault.client import AzureKeyVaultService, _VaultClients
from kv2k8s.vault.errors import VaultError, VaultObjectNotFoundError, VaultTransientError


def _self_signed(cn="kv2k8s.test"):
    key = ec.generate_private_key(ec.SECP256R1())
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, cn)])
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


class FakeSecrets:
    def __init__(self, items=None, error=None):
        self.items = items or {}
        self.error = error
        self.calls = []

    def get_secret(self, name, version=None):
        self.calls.append((name, version))
        if self.error:
            raise self.error
        if name not in self.items:
            raise ResourceNotFoundError(f"{name} not found")
        value, content_type = self.items[name]
        return SimpleNamespace(value=value, properties=SimpleNamespace(content_type=content_type))


class FakeCertificates:
    def __init__(self, der):
        self.der = der
        self.calls = []

    def get_certificate(self, name):
        self.calls.append(("latest", name))
        return SimpleNamespace(cer=self.der)

    def get_certificate_version(self, name, version):
        self.calls.append(("version", name, version))
        return SimpleNamespace(cer=self.der)


class FakeKeys:
    def __init__(self, jwk):
        self.jwk = jwk

    def get_key(self, name, version=None):
        return SimpleNamespace(key=self.jwk)


def _service(secrets=None, certificates=None, keys=None):
    svc = AzureKeyVaultService(credential=object())
    svc._clients["my-vault"] = _VaultClients(
        secrets=secrets or FakeSecrets(),
        certificates=certificates or FakeCertificates(b""),
        keys=keys or FakeKeys(None),
    )
    return svc


def _ref(name="obj", version=None):
    return VaultRef.model_validate({"name": "my-vault", "object": {"name": name, "type": "secret", "version": version}})


def test_vault_url_uses_dns_suffix():
    svc = AzureKeyVaultService(credential=object(), dns_suffix="vault.azure.cn")
    assert svc.vault_url("kv") == "https://kv.vault.azure.cn"


def test_get_secret_passes_version():
    secrets = FakeSecrets({"obj": ("p@ss", None)})
    assert _service(secrets).get_secret(_ref(version="abc")) == "p@ss"
    assert secrets.calls == [("obj", "abc")]


def test_errors_are_translated():
    with pytest.raises(VaultObjectNotFoundError):
        _service(FakeSecrets()).get_secret(_ref("missing"))
    with pytest.raises(VaultTransientError):
        _service(FakeSecrets(error=HttpResponseError("throttled"))).get_secret(_ref())


def test_public_certificate_from_certificates_api():
    cert, _ = _self_signed()
    certs = FakeCertificates(cert.public_bytes(serialization.Encoding.DER))
    svc = _service(certificates=certs)

    assert svc.get_certificate(_ref()).certificate == cert
    svc.get_certificate(_ref(version="v2"))
    assert certs.calls == [("latest", "obj"), ("version", "obj", "v2")]


def test_certificate_with_key_from_pkcs12_secret():
    cert, key = _self_signed()
    p12 = pkcs12.serialize_key_and_certificates(b"c", key, cert, None, serialization.NoEncryption())
    secrets = FakeSecrets({"obj": (base64.b64encode(p12).decode(), "application/x-pkcs12")})

    got = _service(secrets).get_certificate(_ref(), export_private_key=True)
    assert got.certificate == cert
    assert b"PRIVATE KEY" in got.export_private_key_pem()


def test_certificate_with_key_from_pem_secret():
    cert, key = _self_signed()
    pem = (
        key.private_bytes(serialization.Encoding.PEM, serialization.PrivateFormat.TraditionalOpenSSL, serialization.NoEncryption())
        + cert.public_bytes(serialization.Encoding.PEM)
    ).decode()
    secrets = FakeSecrets({"obj": (pem, "application/x-pem-file")})

    got = _service(secrets).get_certificate(_ref(), export_private_key=True)
    assert got.export_certificate_pem() == cert.public_bytes(serialization.Encoding.PEM)
    assert got.private_key is not None


def test_certificate_unknown_content_type():
    secrets = FakeSecrets({"obj": ("x", "text/plain")})
    with pytest.raises(VaultError):
        _service(secrets).get_certificate(_ref(), export_private_key=True)


def test_key_is_rendered_as_public_jwk():
    jwk = SimpleNamespace(
        kid="https://my-vault.vault.azure.net/keys/obj/1",
        kty=SimpleNamespace(value="RSA"),
        n=b"\x01\x02\x03",
        e=b"\x01\x00\x01",
        crv=None,
        x=None,
        y=None,
        d=b"secret-part",
    )
    doc = json.loads(_service(keys=FakeKeys(jwk)).get_key(_ref()))
    assert doc == {"kid": jwk.kid, "kty": "RSA", "n": "AQID", "e": "AQAB"}


def test_chain_is_exported_after_leaf():
    leaf, key = _self_signed("leaf")
    ca, _ = _self_signed("ca")
    c = Certificate(certificate=leaf, chain=(ca,), private_key=key)
    pem = c.export_certificate_pem()
    assert pem.index(leaf.public_bytes(serialization.Encoding.PEM)) == 0
    assert pem.endswith(ca.public_bytes(serialization.Encoding.PEM))


def test_export_key_without_key_fails():
    cert, _ = _self_signed()
    with pytest.raises(ValueError):
        Certificate(certificate=cert).export_private_key_pem()


@pytest.mark.parametrize(
    "value,content_type",
    [
        (base64.b64encode(b"not a pkcs12 bundle").decode(), "application/x-pkcs12"),
        ("%%% not base64 %%%", None),
        ("-----BEGIN NOTHING-----\n-----END NOTHING-----\n", "application/x-pem-file"),
    ],
)
def test_unparseable_certificate_secret_is_vault_error(value, content_type):
    secrets = FakeSecrets({"obj": (value, content_type)})
    with pytest.raises(VaultError, match="not valid"):
        _service(secrets).get_certificate(_ref(), export_private_key=True)


def test_unparseable_public_certificate_is_vault_error():
    svc = _service(certificates=FakeCertificates(b"\x00garbage"))
    with pytest.raises(VaultError, match="not valid DER"):
        svc.get_certificate(_ref())
