"""Self-signed certificate authorities for deployment TLS.

Each CA lives in its own secret holding a PEM certificate (``ca.crt``)
and a PEM private key (``ca.key``).
"""

import datetime
from dataclasses import dataclass

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import ExtendedKeyUsageOID, NameOID

from kube_arango_trust import constants

CA_VALIDITY = datetime.timedelta(days=365 * 10)


@dataclass(frozen=True, slots=True)
class CAMaterial:
    """PEM encoded certificate and private key of a CA.

    Attributes:
        certificate: The self-signed CA certificate.
        private_key: The unencrypted PKCS#8 private key.

    """

    certificate: bytes
    private_key: bytes

    def to_secret_data(self) -> dict[str, bytes]:
        return {
            constants.SECRET_CA_CERTIFICATE: self.certificate,
            constants.SECRET_CA_KEY: self.private_key,
        }


def tls_ca_common_name(deployment_name: str) -> str:
    return f"{deployment_name} Root Certificate"


def client_auth_ca_common_name(deployment_name: str) -> str:
    return f"{deployment_name} Client Authentication Root Certificate"


def create_ca_certificate(
    common_name: str,
    *,
    client_auth: bool = False,
    valid_from: datetime.datetime | None = None,
) -> CAMaterial:
    """Generate a self-signed CA with an ECDSA P-256 key.

    Args:
        common_name: Subject and issuer common name.
        client_auth: Restrict the CA to client authentication.
        valid_from: Start of the validity period, defaults to now.

    Returns:
        The generated CA material.

    """
    key = ec.generate_private_key(ec.SECP256R1())
    not_before = valid_from or datetime.datetime.now(datetime.timezone.utc)
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, common_name)])

    builder = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(not_before)
        .not_valid_after(not_before + CA_VALIDITY)
        .add_extension(x509.BasicConstraints(ca=True, path_length=None), critical=True)
        .add_extension(
            x509.KeyUsage(
                digital_signature=True,
                content_commitment=False,
                key_encipherment=False,
                data_encipherment=False,
                key_agreement=False,
                key_cert_sign=True,
                crl_sign=True,
                encipher_only=False,
                decipher_only=False,
            ),
            critical=True,
        )
        .add_extension(x509.SubjectKeyIdentifier.from_public_key(key.public_key()), critical=False)
    )
    if client_auth:
        builder = builder.add_extension(
            x509.ExtendedKeyUsage([ExtendedKeyUsageOID.CLIENT_AUTH]), critical=False
        )

    cert = builder.sign(key, hashes.SHA256())
    return CAMaterial(
        certificate=cert.public_bytes(serialization.Encoding.PEM),
        private_key=key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        ),
    )
