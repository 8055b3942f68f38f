"""
QUIC_MIMICRY.PY - Synthetic QUIC long-header Initial packets
Shape of a client Initial (header + CRYPTO frame carrying a ClientHello-like
body) followed by a short follow-up datagram
"""
import struct
import logging

from mimic_settings import MimicSettings, MimicResult, hex_blob
from securerand import SecureRandom, system_random

logger = logging.getLogger("MIMIC")


# Long header, fixed bit, packet type Initial, 2-byte packet number length
QUIC_INITIAL_FIRST_BYTE = 0xc1

QUIC_VERSIONS = {
    "1": 0x00000001,  # RFC 9000
    "2": 0x6b3343cf,  # RFC 9369
}
QUIC_DRAFT_VERSION = 0xff000020  # draft-32

DCID_LENGTH = 8

# Two-byte variable-length integer prefix (top bits 01)
VARINT_2BYTE = 0x4000

# Room left after the declared length
PADDING_MARGIN = 10

# CRYPTO frame (0x06), offset 0, 2-byte varint length follows
CRYPTO_FRAME_PREFIX = b'\x06\x00\x40'
TLS_LEGACY_VERSION = b'\x03\x03'
SESSION_ID_LENGTH = 32
TLS_AES_128_GCM_SHA256 = b'\x13\x01'
COMPRESSION_NULL = b'\x01\x00'


def quic_version(label: str) -> int:
    """Wire version for a settings label; unknown labels map to draft-32"""
    return QUIC_VERSIONS.get(label, QUIC_DRAFT_VERSION)


def build_initial_packet(version: int, rng: SecureRandom) -> bytes:
    """
    Build a client Initial: long header, 8-byte DCID, empty SCID, short
    token, declared length, low packet-number byte, ClientHello-shaped
    CRYPTO payload and zero padding up to declared length + margin
    """
    dcid = rng.token_bytes(DCID_LENGTH)
    token = rng.token_bytes(rng.randint(0, 15))
    declared_length = rng.randint(200, 399)
    packet_number = rng.randint(0, 0xFFFFFE)

    header = (
        struct.pack("!BI", QUIC_INITIAL_FIRST_BYTE, version) +
        struct.pack("!B", len(dcid)) + dcid +
        b'\x00' +  # SCID length
        struct.pack("!B", len(token)) + token +
        struct.pack("!H", declared_length | VARINT_2BYTE) +
        struct.pack("!B", packet_number & 0xFF)
    )

    extensions = rng.token_bytes(rng.randint(100, 199))
    payload = (
        CRYPTO_FRAME_PREFIX + struct.pack("!B", rng.randint(50, 99)) +
        TLS_LEGACY_VERSION +
        rng.token_bytes(32) +  # client random
        struct.pack("!B", SESSION_ID_LENGTH) + rng.token_bytes(SESSION_ID_LENGTH) +
        TLS_AES_128_GCM_SHA256 +
        COMPRESSION_NULL +
        struct.pack("!H", len(extensions)) + extensions
    )

    packet = header + payload
    padding = max(0, declared_length - len(packet) + PADDING_MARGIN)
    return packet + bytes(padding)


def build_follow_up_packet(version: int, rng: SecureRandom) -> bytes:
    return b'\x00' + struct.pack("!I", version) + b'\x00' + rng.token_bytes(24)


def build_quic_mimic(settings: MimicSettings, rng: SecureRandom = None) -> MimicResult:
    """
    QUIC mimic:
        i1 = Initial packet, i2 = follow-up packet, j1 = 8 random bytes
    """
    rng = rng or system_random()
    version = quic_version(settings.quic_version)

    initial = build_initial_packet(version, rng)
    follow_up = build_follow_up_packet(version, rng)
    junk = rng.token_bytes(8)
    itime = rng.randint(*settings.itime_bounds())

    logger.debug(f"[QUIC] Mimic version={version:08x} initial={len(initial)}B")

    return MimicResult(
        i1=hex_blob(initial),
        i2=hex_blob(follow_up),
        j1=hex_blob(junk),
        itime=str(itime),
    )
