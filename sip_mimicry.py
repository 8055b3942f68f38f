"""
SIP_MIMICRY.PY - Decoy SIP/SDP call dialog
INVITE (SDP offer) -> 100 Trying -> 180 Ringing -> 200 OK (SDP answer) -> ACK
-> BYE -> 200 OK, plus an OPTIONS keep-alive. Every message is CRLF text,
hex-encoded as UTF-8.
"""
import logging
from dataclasses import dataclass
from typing import List, Tuple

from mimic_settings import MimicSettings, MimicResult, hex_blob
from securerand import SecureRandom, system_random

logger = logging.getLogger("MIMIC")


CRLF = "\r\n"

# RFC 3261 magic cookie for Via branch ids
BRANCH_MAGIC = "z9hG4bK"

SIP_USER_AGENTS = [
    "Ooma/1.0",
    "Ooma/2.0.1",
    "Ooma/3.1.0",
    "Grandstream GXP2170 1.0.11.23",
    "Grandstream GXP1625 1.0.4.128",
    "Grandstream GXV3370 1.0.1.58",
    "Grandstream HT802 1.0.29.8",
    "Yealink SIP-T46S 66.86.0.15",
    "Yealink SIP-T54W 96.86.0.80",
    "Yealink SIP-T58A 58.86.0.20",
    "Yealink W60B 77.86.0.15",
    "Cisco-SIPGateway/IOS-12.x",
    "Cisco-SIPGateway/IOS-15.x",
    "Cisco/7841-3PCC-11.3.7",
    "Cisco/8845-3PCC-12.0.1",
    "Polycom/VVX-VVX_501-UA/6.3.1.8427",
    "Polycom/SoundPoint-IP_550-UA/3.3.5.0247",
    "Polycom/VVX-VVX_411-UA/6.4.0.9774",
    "Linphone/4.5.0 (belle-sip/4.5.0)",
    "Linphone/5.1.0 (belle-sip/5.2.0)",
    "Linphone Desktop/4.4.0",
    "Zoiper rv2.10.18.4",
    "Zoiper/5.5.14",
]

SIP_ALLOW_METHODS = [
    "INVITE, ACK, CANCEL, BYE, OPTIONS, INFO, REFER, NOTIFY",
    "INVITE, ACK, CANCEL, BYE, OPTIONS, NOTIFY, REFER, SUBSCRIBE, INFO, MESSAGE",
    "INVITE, ACK, BYE, CANCEL, OPTIONS, NOTIFY, REFER",
    "INVITE, ACK, CANCEL, OPTIONS, BYE, REFER, SUBSCRIBE, NOTIFY, INFO, MESSAGE, PRACK, UPDATE",
    "INVITE, ACK, BYE, CANCEL, OPTIONS, INFO, SUBSCRIBE, NOTIFY, REFER, MESSAGE",
]

SIP_SUPPORTED = [
    "replaces, timer",
    "replaces, 100rel, timer",
    "replaces, norefersub, timer",
    "100rel, replaces, timer, norefersub",
    "replaces",
    "timer, replaces, path, gruu",
]

# (payload type, rtpmap encoding)
SDP_CODECS = [
    ("0", "PCMU/8000"),
    ("8", "PCMA/8000"),
    ("18", "G729/8000"),
    ("4", "G723/8000"),
    ("9", "G722/8000"),
    ("3", "GSM/8000"),
    ("101", "telephone-event/8000"),
    ("96", "opus/48000/2"),
    ("97", "iLBC/8000"),
]

SDP_SESSION_NAMES = [
    "SIP Call",
    "VoIP Session",
    "Phone Call",
    "Audio Session",
    "-",
    "SIP Media",
    "Call",
]

SDP_PTIMES = [10, 20, 30, 40]

# 5060 three times as often as 5061
SIP_SERVER_PORTS = [5060, 5060, 5060, 5061]

SIP_REASON_NORMAL_CLEARING = 'Q.850;cause=16;text="Normal call clearing"'


@dataclass(frozen=True)
class SipDialog:
    """Identifiers shared by every message of one synthesized call"""
    from_user: str
    to_user: str
    from_domain: str
    to_domain: str
    call_id: str
    invite_branch: str
    ack_branch: str
    bye_branch: str
    options_branch: str
    from_tag: str
    to_tag: str
    cseq: int
    user_agent: str
    client_ip: str
    server_ip: str
    client_port: int
    server_port: int
    rtp_port: int
    offer_session_id: str
    answer_session_id: str

    @property
    def from_header(self) -> str:
        return f'From: "{self.from_user}" <sip:{self.from_user}@{self.from_domain}>;tag={self.from_tag}'

    @property
    def to_uri(self) -> str:
        return f"sip:{self.to_user}@{self.to_domain}"

    @property
    def call_id_header(self) -> str:
        return f"Call-ID: {self.call_id}@{self.from_domain}"

    def via(self, branch: str) -> str:
        return f"Via: SIP/2.0/UDP {self.client_ip}:{self.client_port};branch={branch};rport"

    def via_received(self, branch: str) -> str:
        """Via as echoed back by the server, with received/rport filled in"""
        return (
            f"Via: SIP/2.0/UDP {self.client_ip}:{self.client_port};branch={branch};"
            f"received={self.client_ip};rport={self.client_port}"
        )


def random_private_ip(rng: SecureRandom) -> str:
    """Address in 192.168/16, 10/8 or 172.16/12 (range picked uniformly first)"""
    block = rng.randbelow(3)
    if block == 0:
        return f"192.168.{rng.randint(0, 255)}.{rng.randint(1, 254)}"
    if block == 1:
        return f"10.{rng.randint(0, 255)}.{rng.randint(0, 255)}.{rng.randint(1, 254)}"
    return f"172.{rng.randint(16, 31)}.{rng.randint(0, 255)}.{rng.randint(1, 254)}"


def _branch(rng: SecureRandom) -> str:
    return BRANCH_MAGIC + rng.token_hex(8)


def _tag(rng: SecureRandom) -> str:
    return str(rng.randint(100000000, 999999999))


def _session_id(rng: SecureRandom) -> str:
    return str(rng.randint(1000000000, 9999999999))


def new_dialog(settings: MimicSettings, rng: SecureRandom) -> SipDialog:
    return SipDialog(
        from_user=settings.sip_from_user,
        to_user=settings.sip_to_user,
        from_domain=settings.sip_from_domain,
        to_domain=settings.sip_to_domain,
        call_id=rng.token_hex(16),
        invite_branch=_branch(rng),
        ack_branch=_branch(rng),
        bye_branch=_branch(rng),
        options_branch=_branch(rng),
        from_tag=_tag(rng),
        to_tag=_tag(rng),
        cseq=rng.randint(1, 999999),
        user_agent=rng.choice(SIP_USER_AGENTS),
        client_ip=random_private_ip(rng),
        server_ip=random_private_ip(rng),
        client_port=rng.randrange(10000, 65000),
        server_port=rng.choice(SIP_SERVER_PORTS),
        rtp_port=rng.randrange(8000, 30000) // 2 * 2,
        offer_session_id=_session_id(rng),
        answer_session_id=_session_id(rng),
    )


# ==================== SDP ====================

def build_sdp_body(user: str, domain: str, ip: str, rtp_port: int, session_id: str,
                   rng: SecureRandom) -> str:
    """
    Audio-only SDP offer/answer.

    2-5 codecs in random order with their rtpmap lines; fmtp, ptime,
    maxptime and rtcp attributes are each included independently.
    """
    codecs: List[Tuple[str, str]] = rng.sample(SDP_CODECS, rng.randint(2, 5))
    payload_types = " ".join(pt for pt, _ in codecs)
    session_version = rng.randint(1, 9999999998)
    origin_host = ip if rng.coin() else domain

    lines = [
        "v=0",
        f"o={user} {session_id} {session_version} IN IP4 {origin_host}",
        f"s={rng.choice(SDP_SESSION_NAMES)}",
        f"c=IN IP4 {ip}",
        "t=0 0",
        f"m=audio {rtp_port} RTP/AVP {payload_types}",
    ]
    lines.extend(f"a=rtpmap:{pt} {encoding}" for pt, encoding in codecs)
    if rng.coin():
        lines.append("a=fmtp:101 0-16")
    lines.append("a=sendrecv")
    if rng.coin():
        lines.append(f"a=ptime:{rng.choice(SDP_PTIMES)}")
    if rng.one_in(3):
        lines.append("a=maxptime:150")
    if rng.one_in(4):
        lines.append(f"a=rtcp:{rtp_port + 1}")

    return "".join(line + CRLF for line in lines)


# ==================== MESSAGES ====================

def render_message(start_line: str, headers: List[str], body: str = "") -> bytes:
    """
    Serialize one SIP message. Content-Length is appended last and always
    equals the UTF-8 byte length of the body.
    """
    body_bytes = body.encode("utf-8")
    lines = [start_line] + headers + [f"Content-Length: {len(body_bytes)}"]
    return (CRLF.join(lines) + CRLF + CRLF).encode("utf-8") + body_bytes


def _max_forwards(rng: SecureRandom) -> str:
    return f"Max-Forwards: {rng.randint(68, 70)}"


def build_invite(d: SipDialog, rng: SecureRandom) -> bytes:
    sdp = build_sdp_body(d.from_user, d.from_domain, d.client_ip, d.rtp_port, d.offer_session_id, rng)
    headers = [
        d.via(d.invite_branch),
        _max_forwards(rng),
        d.from_header,
        f"To: <{d.to_uri}>",
        d.call_id_header,
        f"CSeq: {d.cseq} INVITE",
        f"Contact: <sip:{d.from_user}@{d.client_ip}:{d.client_port}>",
        f"User-Agent: {d.user_agent}",
        f"Allow: {rng.choice(SIP_ALLOW_METHODS)}",
        f"Supported: {rng.choice(SIP_SUPPORTED)}",
    ]
    if rng.one_in(3):
        headers.append(f"Session-Expires: {rng.randint(1800, 3599)};refresher=uac")
    if rng.one_in(4):
        headers.append("Min-SE: 90")
    headers.append("Content-Type: application/sdp")
    return render_message(f"INVITE {d.to_uri} SIP/2.0", headers, sdp)


def build_trying(d: SipDialog) -> bytes:
    headers = [
        d.via_received(d.invite_branch),
        d.from_header,
        f"To: <{d.to_uri}>",
        d.call_id_header,
        f"CSeq: {d.cseq} INVITE",
    ]
    return render_message("SIP/2.0 100 Trying", headers)


def build_ringing(d: SipDialog, rng: SecureRandom) -> bytes:
    headers = [
        d.via_received(d.invite_branch),
        d.from_header,
        f"To: <{d.to_uri}>;tag={d.to_tag}",
        d.call_id_header,
        f"CSeq: {d.cseq} INVITE",
        f"Contact: <{d.to_uri}>",
    ]
    if rng.one_in(4):
        headers.append("Require: 100rel")
    return render_message("SIP/2.0 180 Ringing", headers)


def build_invite_ok(d: SipDialog, rng: SecureRandom) -> bytes:
    # Callee answers on the next even RTP port
    sdp = build_sdp_body(d.to_user, d.to_domain, d.server_ip, d.rtp_port + 2, d.answer_session_id, rng)
    headers = [
        d.via_received(d.invite_branch),
        d.from_header,
        f"To: <{d.to_uri}>;tag={d.to_tag}",
        d.call_id_header,
        f"CSeq: {d.cseq} INVITE",
        f"Contact: <sip:{d.to_user}@{d.server_ip}:{d.server_port}>",
        f"User-Agent: {d.user_agent}",
        f"Allow: {rng.choice(SIP_ALLOW_METHODS)}",
        f"Supported: {rng.choice(SIP_SUPPORTED)}",
    ]
    if rng.one_in(3):
        headers.append(f"Session-Expires: {rng.randint(1800, 3599)};refresher=uas")
    if rng.one_in(5):
        headers.append(f"Server: {d.user_agent}")
    headers.append("Content-Type: application/sdp")
    return render_message("SIP/2.0 200 OK", headers, sdp)


def build_ack(d: SipDialog, rng: SecureRandom) -> bytes:
    headers = [
        d.via(d.ack_branch),
        _max_forwards(rng),
        d.from_header,
        f"To: <{d.to_uri}>;tag={d.to_tag}",
        d.call_id_header,
        f"CSeq: {d.cseq} ACK",
        f"User-Agent: {d.user_agent}",
    ]
    return render_message(f"ACK {d.to_uri} SIP/2.0", headers)


def build_bye(d: SipDialog, rng: SecureRandom) -> bytes:
    headers = [
        d.via(d.bye_branch),
        _max_forwards(rng),
        d.from_header,
        f"To: <{d.to_uri}>;tag={d.to_tag}",
        d.call_id_header,
        f"CSeq: {d.cseq + 1} BYE",
        f"User-Agent: {d.user_agent}",
    ]
    if rng.one_in(3):
        headers.append(f"Reason: {SIP_REASON_NORMAL_CLEARING}")
    return render_message(f"BYE {d.to_uri} SIP/2.0", headers)


def build_bye_ok(d: SipDialog) -> bytes:
    headers = [
        d.via_received(d.bye_branch),
        d.from_header,
        f"To: <{d.to_uri}>;tag={d.to_tag}",
        d.call_id_header,
        f"CSeq: {d.cseq + 1} BYE",
    ]
    return render_message("SIP/2.0 200 OK", headers)


def build_options(d: SipDialog, rng: SecureRandom) -> bytes:
    """Out-of-dialog keep-alive: own Call-ID and CSeq, same UA tag"""
    headers = [
        d.via(d.options_branch),
        _max_forwards(rng),
        f"From: <sip:{d.from_user}@{d.from_domain}>;tag={d.from_tag}",
        f"To: <sip:{d.to_domain}>",
        f"Call-ID: {rng.token_hex(16)}@{d.from_domain}",
        f"CSeq: {rng.randint(1, 999999)} OPTIONS",
        f"Contact: <sip:{d.from_user}@{d.client_ip}:{d.client_port}>",
        f"User-Agent: {d.user_agent}",
        "Accept: application/sdp",
    ]
    return render_message(f"OPTIONS sip:{d.to_domain} SIP/2.0", headers)


def build_sip_mimic(settings: MimicSettings, rng: SecureRandom = None) -> MimicResult:
    """
    SIP mimic:
        i1..i5 = INVITE, 100 Trying, 180 Ringing, 200 OK, ACK
        j1..j3 = BYE, 200 OK (BYE), OPTIONS
    """
    rng = rng or system_random()
    dialog = new_dialog(settings, rng)

    messages = [
        build_invite(dialog, rng),
        build_trying(dialog),
        build_ringing(dialog, rng),
        build_invite_ok(dialog, rng),
        build_ack(dialog, rng),
        build_bye(dialog, rng),
        build_bye_ok(dialog),
        build_options(dialog, rng),
    ]
    itime = rng.randint(*settings.itime_bounds())

    logger.debug(f"[SIP] Dialog {dialog.call_id[:8]}... cseq={dialog.cseq} ua={dialog.user_agent}")

    i1, i2, i3, i4, i5, j1, j2, j3 = (hex_blob(m) for m in messages)
    return MimicResult(i1=i1, i2=i2, i3=i3, i4=i4, i5=i5, j1=j1, j2=j2, j3=j3, itime=str(itime))
