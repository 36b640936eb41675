"""Shared fixtures for LOCO tests."""

import ipaddress
import ssl
from datetime import UTC, datetime, timedelta

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec, rsa
from cryptography.hazmat.primitives.serialization import Encoding, NoEncryption, PrivateFormat
from cryptography.x509.oid import ExtendedKeyUsageOID, NameOID

CONNECTION_INFO = {
    "bgKeepItv": 900,
    "bgReconnItv": 300,
    "bgPingItv": 600,
    "fgPingItv": 60,
    "reqTimeout": 20,
    "encType": 2,
    "connTimeout": 10,
    "recvHeaderTimeout": 5,
    "inSegTimeout": 30,
    "outSegTimeout": 30,
    "blockSendBufSize": 65536,
    "ports": [443, 5223],
}

GETCONF_RESPONSE = {
    "revision": 77,
    "3g": CONNECTION_INFO,
    "wifi": CONNECTION_INFO,
    "ticket": {"ssl": ["a"], "v2sl": ["b"], "lsl": ["ticket-loco.kakao.com"], "lsl6": []},
    "trailer": {
        "tokenExpireTime": 7200,
        "resolution": 720,
        "resolutionHD": 1080,
        "compRatio": 70,
        "compRatioHD": 85,
        "downMode": 0,
        "concurrentDownLimit": 5,
        "concurrentUpLimit": 5,
        "maxRelaySize": 104857600,
        "downCheckSize": 31457280,
        "upMaxSize": 104857600,
        "videoUpMaxSize": 104857600,
        "vCodec": 1,
        "vFps": 30,
        "aCodec": 1,
        "contentExpireTime": 1209600,
        "vResolution": 640,
        "vBitrate": 1500000,
        "aFrequency": 44100,
    },
    "trailer.h": {"vResolution": 1280, "vBitrate": 2500000, "aFrequency": 48000},
    "unknownField": True,
}


@pytest.fixture(scope="session")
def rsa_private_key() -> rsa.RSAPrivateKey:
    """Server side key pair standing in for the embedded LOCO key."""
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def rsa_public_key(rsa_private_key: rsa.RSAPrivateKey) -> rsa.RSAPublicKey:
    return rsa_private_key.public_key()


def _key_usage(*, digital_signature: bool = False, key_cert_sign: bool = False) -> x509.KeyUsage:
    return x509.KeyUsage(
        digital_signature=digital_signature,
        content_commitment=False,
        key_encipherment=False,
        data_encipherment=False,
        key_agreement=False,
        key_cert_sign=key_cert_sign,
        crl_sign=key_cert_sign,
        encipher_only=False,
        decipher_only=False,
    )


@pytest.fixture(scope="session")
def tls_contexts(tmp_path_factory: pytest.TempPathFactory) -> tuple[ssl.SSLContext, ssl.SSLContext]:
    """Server and client TLS contexts sharing a throwaway CA, valid for 127.0.0.1."""
    start_date = datetime.now(tz=UTC) - timedelta(minutes=5)
    end_date = start_date + timedelta(days=1)

    # Certificate authority
    ca_key = ec.generate_private_key(ec.SECP256R1())
    ca_name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, "LOCO Test CA")])
    ca_ski = x509.SubjectKeyIdentifier.from_public_key(ca_key.public_key())
    ca_cert = (
        x509.CertificateBuilder(
            issuer_name=ca_name,
            subject_name=ca_name,
            public_key=ca_key.public_key(),
            serial_number=x509.random_serial_number(),
            not_valid_before=start_date,
            not_valid_after=end_date,
        )
        .add_extension(x509.BasicConstraints(ca=True, path_length=0), critical=True)
        .add_extension(_key_usage(digital_signature=True, key_cert_sign=True), critical=True)
        .add_extension(ca_ski, critical=False)
        .sign(ca_key, hashes.SHA256())
    )

    # Server certificate
    server_key = ec.generate_private_key(ec.SECP256R1())
    server_cert = (
        x509.CertificateBuilder(
            issuer_name=ca_name,
            subject_name=x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, "localhost")]),
            public_key=server_key.public_key(),
            serial_number=x509.random_serial_number(),
            not_valid_before=start_date,
            not_valid_after=end_date,
        )
        .add_extension(x509.BasicConstraints(ca=False, path_length=None), critical=True)
        .add_extension(_key_usage(digital_signature=True), critical=True)
        .add_extension(x509.ExtendedKeyUsage([ExtendedKeyUsageOID.SERVER_AUTH]), critical=False)
        .add_extension(
            x509.SubjectAlternativeName(
                [x509.DNSName("localhost"), x509.IPAddress(ipaddress.IPv4Address("127.0.0.1"))]
            ),
            critical=False,
        )
        .add_extension(x509.SubjectKeyIdentifier.from_public_key(server_key.public_key()), critical=False)
        .add_extension(x509.AuthorityKeyIdentifier.from_issuer_subject_key_identifier(ca_ski), critical=False)
        .sign(ca_key, hashes.SHA256())
    )

    directory = tmp_path_factory.mktemp("tls")
    cert_file = directory / "server.pem"
    key_file = directory / "server.key"
    cert_file.write_bytes(server_cert.public_bytes(Encoding.PEM))
    key_file.write_bytes(server_key.private_bytes(Encoding.PEM, PrivateFormat.PKCS8, NoEncryption()))

    server_context = ssl.create_default_context(ssl.Purpose.CLIENT_AUTH)
    server_context.load_cert_chain(certfile=cert_file, keyfile=key_file)

    client_context = ssl.create_default_context(ssl.Purpose.SERVER_AUTH)
    client_context.load_verify_locations(cadata=ca_cert.public_bytes(Encoding.PEM).decode())

    return server_context, client_context


@pytest.fixture
def getconf_response() -> dict:
    """A GETCONF reply document as the booking service sends it."""
    return dict(GETCONF_RESPONSE)
