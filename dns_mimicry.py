"""
DNS_MIMICRY.PY - Decoy DNS exchange synthesis
Query A / Query AAAA with EDNS0 options, their responses and one follow-up
query, all in wire format
"""
import struct
import logging
from typing import List

from mimic_settings import MimicSettings, MimicResult, hex_blob
from securerand import SecureRandom, system_random

logger = logging.getLogger("MIMIC")


# Record types
DNS_TYPE_A = 0x0001
DNS_TYPE_AAAA = 0x001c
DNS_TYPE_HTTPS = 0x0041
DNS_TYPE_OPT = 0x0029
DNS_CLASS_IN = 0x0001

# OPT pseudo-record: CLASS carries the UDP payload size, TTL the extended flags
EDNS_UDP_PAYLOAD = 0x1000  # 4096
EDNS_DO_FLAG = 0x00008000  # DNSSEC OK

# EDNS0 option codes
EDNS_OPT_SUBNET = 0x0008   # RFC 7871
EDNS_OPT_COOKIE = 0x000a   # RFC 7873
EDNS_OPT_PADDING = 0x000c  # RFC 7830

# Header flag words seen from stub resolvers / recursive servers
QUERY_FLAGS = [
    0x0100,  # RD
    0x0120,  # RD + AD
    0x0100,  # RD
    0x0110,  # RD + CD
]
RESPONSE_FLAGS = [
    0x8180,  # QR + RD + RA
    0x8580,  # QR + AA + RD + RA
    0x8180,
]

# Pointer to the question name right after the 12-byte header
COMPRESSED_QNAME = 0xc00c

MAX_LABEL_LENGTH = 63


class MimicDomainRequiredError(ValueError):
    """DNS mimic requested without a target domain"""

    def __init__(self, message: str = "Domain is required for DNS mimic"):
        super().__init__(message)


def encode_name(domain: str) -> bytes:
    """
    Encode a domain as length-prefixed labels terminated by a zero byte.

    Empty labels (leading/trailing dots) are skipped; labels are capped at
    63 octets so the length byte never collides with a compression pointer.
    """
    qname = b''
    for label in domain.split('.'):
        if not label:
            continue
        raw = label.encode('utf-8')[:MAX_LABEL_LENGTH]
        qname += struct.pack("!B", len(raw)) + raw
    return qname + b'\x00'


def _header(transaction_id: int, flags: int, answers: int) -> bytes:
    # QDCOUNT=1, NSCOUNT=0, ARCOUNT=1 (the OPT record)
    return struct.pack("!HHHHHH", transaction_id, flags, 1, answers, 0, 1)


def _edns_option(code: int, data: bytes) -> bytes:
    return struct.pack("!HH", code, len(data)) + data


def _opt_record(options: List[bytes]) -> bytes:
    rdata = b''.join(options)
    return (
        b'\x00' +  # root owner name
        struct.pack("!HHIH", DNS_TYPE_OPT, EDNS_UDP_PAYLOAD, EDNS_DO_FLAG, len(rdata)) +
        rdata
    )


def _padding_option(length: int) -> bytes:
    return _edns_option(EDNS_OPT_PADDING, bytes(length))


def _client_subnet_option(rng: SecureRandom) -> bytes:
    # Family 1 (IPv4), source prefix /24, scope 0, three address octets
    return _edns_option(EDNS_OPT_SUBNET, struct.pack("!HBB", 1, 24, 0) + rng.token_bytes(3))


def build_query(domain: str, transaction_id: int, qtype: int, rng: SecureRandom) -> bytes:
    """
    Build a recursive query with an OPT record.

    The OPT RDATA always carries a client cookie; padding and client-subnet
    options are each added with probability 1/2, then the option order is
    shuffled.
    """
    question = encode_name(domain) + struct.pack("!HH", qtype, DNS_CLASS_IN)

    options = [_edns_option(EDNS_OPT_COOKIE, rng.token_bytes(8))]
    if rng.coin():
        options.append(_padding_option(rng.randint(12, 63)))
    if rng.coin():
        options.append(_client_subnet_option(rng))
    rng.shuffle(options)

    return _header(transaction_id, rng.choice(QUERY_FLAGS), 0) + question + _opt_record(options)


def _random_ipv4(rng: SecureRandom) -> bytes:
    return bytes([
        rng.randint(1, 254),
        rng.randint(0, 254),
        rng.randint(0, 254),
        rng.randint(1, 254),
    ])


def _answer_record(rng: SecureRandom) -> bytes:
    rdata = _random_ipv4(rng)
    ttl = rng.randint(60, 7199)
    return struct.pack("!HHHIH", COMPRESSED_QNAME, DNS_TYPE_A, DNS_CLASS_IN, ttl, len(rdata)) + rdata


def build_response(domain: str, transaction_id: int, rng: SecureRandom) -> bytes:
    """
    Build an A response: 1-3 IPv4 records pointing back at the question
    name, then an OPT record with a server cookie
    """
    answer_count = rng.randint(1, 3)
    question = encode_name(domain) + struct.pack("!HH", DNS_TYPE_A, DNS_CLASS_IN)
    answers = b''.join(_answer_record(rng) for _ in range(answer_count))

    # Client cookie echoed back + 8-15 byte server cookie
    cookie = rng.token_bytes(8) + rng.token_bytes(rng.randint(8, 15))
    options = [_edns_option(EDNS_OPT_COOKIE, cookie)]
    if rng.coin():
        options.append(_padding_option(rng.randint(8, 31)))

    return (
        _header(transaction_id, rng.choice(RESPONSE_FLAGS), answer_count) +
        question +
        answers +
        _opt_record(options)
    )


def _transaction_id(rng: SecureRandom) -> int:
    return rng.randint(0x0001, 0xFFFE)


def build_dns_mimic(settings: MimicSettings, rng: SecureRandom = None) -> MimicResult:
    """
    DNS mimic:
        i1 = Query A, i2 = Query AAAA, i3 = response to i1,
        i4 = follow-up query (HTTPS for the domain or A for www.<domain>),
        i5 = same A response shape, keyed to i2's transaction id,
        j1/j2 = random junk, j3 empty

    Raises:
        MimicDomainRequiredError: settings.domain is blank
    """
    rng = rng or system_random()

    domain = settings.domain.strip()
    if not domain:
        raise MimicDomainRequiredError()

    txid_a = _transaction_id(rng)
    txid_aaaa = _transaction_id(rng)
    txid_extra = _transaction_id(rng)

    query_a = build_query(domain, txid_a, DNS_TYPE_A, rng)
    query_aaaa = build_query(domain, txid_aaaa, DNS_TYPE_AAAA, rng)
    response_a = build_response(domain, txid_a, rng)

    if rng.coin():
        extra_query = build_query(domain, txid_extra, DNS_TYPE_HTTPS, rng)
    else:
        extra_query = build_query("www." + domain, txid_extra, DNS_TYPE_A, rng)

    response_second = build_response(domain, txid_aaaa, rng)

    itime = rng.randint(*settings.itime_bounds())

    logger.debug(f"[DNS] Mimic for {domain}: txids={txid_a:04x}/{txid_aaaa:04x}/{txid_extra:04x}")

    return MimicResult(
        i1=hex_blob(query_a),
        i2=hex_blob(query_aaaa),
        i3=hex_blob(response_a),
        i4=hex_blob(extra_query),
        i5=hex_blob(response_second),
        j1=hex_blob(rng.token_bytes(rng.randint(8, 23))),
        j2=hex_blob(rng.token_bytes(rng.randint(4, 15))),
        j3="",
        itime=str(itime),
    )
