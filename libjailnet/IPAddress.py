# Copyright (c) 2017-2019, Stefan Grönke
# Copyright (c) 2014-2018, iocage
# All rights reserved.
#
# Redistribution and use in source and binary forms, with or without
# modification, are permitted providing that the following conditions
# are met:
# 1. Redistributions of source code must retain the above copyright
#    notice, this list of conditions and the following disclaimer.
# 2. Redistributions in binary form must reproduce the above copyright
#    notice, this list of conditions and the following disclaimer in the
#    documentation and/or other materials provided with the distribution.
#
# THIS SOFTWARE IS PROVIDED BY THE AUTHOR ``AS IS'' AND ANY EXPRESS OR
# IMPLIED WARRANTIES, INCLUDING, BUT NOT LIMITED TO, THE IMPLIED
# WARRANTIES OF MERCHANTABILITY AND FITNESS FOR A PARTICULAR PURPOSE
# ARE DISCLAIMED.  IN NO EVENT SHALL THE AUTHOR BE LIABLE FOR ANY
# DIRECT, INDIRECT, INCIDENTAL, SPECIAL, EXEMPLARY, OR CONSEQUENTIAL
# DAMAGES (INCLUDING, BUT NOT LIMITED TO, PROCUREMENT OF SUBSTITUTE GOODS
# OR SERVICES; LOSS OF USE, DATA, OR PROFITS; OR BUSINESS INTERRUPTION)
# HOWEVER CAUSED AND ON ANY THEORY OF LIABILITY, WHETHER IN CONTRACT,
# STRICT LIABILITY, OR TORT (INCLUDING NEGLIGENCE OR OTHERWISE) ARISING
# IN ANY WAY OUT OF THE USE OF THIS SOFTWARE, EVEN IF ADVISED OF THE
# POSSIBILITY OF SUCH DAMAGE.
"""libjailnet helpers for IPv4 and IPv6 address values."""
import typing
import ipaddress

import libjailnet.errors

# MyPy
import libjailnet.Logger  # noqa: F401


def split_ipv4_and_mask(
    value: str,
    logger: typing.Optional['libjailnet.Logger.Logger']=None
) -> typing.Tuple[str, str]:
    """
    Split an IPv4 interface value into address and dotted netmask.

    Usage:
        >>> split_ipv4_and_mask("10.0.0.5/24")
        ('10.0.0.5', '255.255.255.0')
        >>> split_ipv4_and_mask("10.0.0.5")
        ('10.0.0.5', '255.255.255.255')
    """
    try:
        interface = ipaddress.IPv4Interface(str(value).strip())
    except (ipaddress.AddressValueError, ipaddress.NetmaskValueError) as e:
        raise libjailnet.errors.InvalidIPAddress(
            reason=f"{value} ({e})",
            ipv6=False,
            logger=logger
        )
    return str(interface.ip), str(interface.netmask)


def is_ipv4_address(value: str) -> bool:
    """Return True if the value is a single IPv4 address."""
    try:
        ipaddress.IPv4Address(value)
        return True
    except ipaddress.AddressValueError:
        return False


def is_ipv6_address(value: str) -> bool:
    """Return True if the value is a single IPv6 address."""
    try:
        ipaddress.IPv6Address(value)
        return True
    except ipaddress.AddressValueError:
        return False


def is_ipv4_cidr(value: str) -> bool:
    """Return True if the value is an IPv4 address with prefix length."""
    if "/" not in value:
        return False
    try:
        ipaddress.IPv4Interface(value)
        return True
    except (ipaddress.AddressValueError, ipaddress.NetmaskValueError):
        return False


def is_ipv6_cidr(value: str) -> bool:
    """Return True if the value is an IPv6 address with prefix length."""
    if "/" not in value:
        return False
    try:
        ipaddress.IPv6Interface(value)
        return True
    except (ipaddress.AddressValueError, ipaddress.NetmaskValueError):
        return False


def get_ip_version(value: str) -> typing.Optional[int]:
    """Return 4 or 6 for address or CIDR values, otherwise None."""
    if is_ipv4_address(value) or is_ipv4_cidr(value):
        return 4
    if is_ipv6_address(value) or is_ipv6_cidr(value):
        return 6
    return None
