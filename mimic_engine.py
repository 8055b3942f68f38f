"""
MIMIC_ENGINE.PY - Mimic generation entry point

Dispatches a MimicSettings value to the DNS, QUIC or SIP builder and returns
a fresh MimicResult. Only the DNS path can fail (blank domain).
"""
import logging
from typing import Callable, Dict

from mimic_settings import MimicType, MimicSettings, MimicResult
from dns_mimicry import build_dns_mimic, MimicDomainRequiredError
from quic_mimicry import build_quic_mimic
from sip_mimicry import build_sip_mimic
from securerand import SecureRandom, system_random

logger = logging.getLogger("MIMIC")

MimicBuilder = Callable[[MimicSettings, SecureRandom], MimicResult]

_BUILDERS: Dict[MimicType, MimicBuilder] = {
    MimicType.DNS: build_dns_mimic,
    MimicType.QUIC: build_quic_mimic,
    MimicType.SIP: build_sip_mimic,
}


def generate(settings: MimicSettings, rng: SecureRandom = None) -> MimicResult:
    """
    Generate one mimic for ``settings``.

    Args:
        settings: Generator configuration (passed by value, never stored)
        rng: Random source; the OS CSPRNG when omitted

    Returns:
        MimicResult with slot fields as ``<b 0x...>`` or empty, itime decimal

    Raises:
        MimicDomainRequiredError: DNS settings with a blank domain
    """
    builder = _BUILDERS[settings.type]
    result = builder(settings, rng or system_random())
    logger.debug(f"[ENGINE] Generated {settings.type.name} mimic itime={result.itime}")
    return result


def generate_default(mimic_type: MimicType, rng: SecureRandom = None) -> MimicResult:
    return generate(MimicSettings.default_for(mimic_type), rng)


__all__ = ['generate', 'generate_default', 'MimicDomainRequiredError']


if __name__ == "__main__":
    from mimic_config import MimicConfig, configure_logging

    configure_logging(MimicConfig.from_env().log_level)

    print("=== Mimic Engine Demo ===\n")
    for mimic_type in MimicType:
        result = generate_default(mimic_type)
        print(f"[{mimic_type.name}] itime={result.itime}")
        for name, value in result.slots().items():
            if value:
                print(f"  {name.upper()} = {value[:64]}{'...' if len(value) > 64 else ''}")
        print()

    try:
        generate(MimicSettings.default_dns().with_changes(domain="   "))
    except MimicDomainRequiredError as e:
        print(f"[DNS] blank domain rejected: {e}")
