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
"""libjailnet MacAddress module."""
import os
import re
import typing

import libjailnet.helpers_object
import libjailnet.errors


class MacAddress:
    """Representation of a NICs hardware address."""

    _address: str
    _hex_pattern = re.compile(r"^[0-9a-f]{12}$")

    def __init__(
        self,
        mac_address: str,
        logger: typing.Optional['libjailnet.Logger.Logger']=None
    ) -> None:
        self.logger = libjailnet.helpers_object.init_logger(self, logger)
        self.address = mac_address

    @property
    def address(self) -> str:
        """Return the actual hardware address."""
        return self._address

    @address.setter
    def address(self, mac_address: str) -> None:
        """Set the hardware address."""
        if isinstance(mac_address, str) is False:
            raise libjailnet.errors.InvalidMacAddress(
                mac_address=str(mac_address),
                logger=self.logger
            )
        address = mac_address.strip()
        address = address.replace(":", "").replace("-", "").lower()

        if self._hex_pattern.match(address) is None:
            raise libjailnet.errors.InvalidMacAddress(
                mac_address=mac_address,
                logger=self.logger
            )

        self._address = address

    def __int__(self) -> int:
        """Return the hardware address as 48 bit number."""
        return int(self.address, 16)

    def __eq__(self, other: typing.Any) -> bool:
        """Compare the hardware address with another MacAddress or str."""
        if isinstance(other, MacAddress):
            return (self.address == other.address) is True
        if isinstance(other, str):
            try:
                return (self.address == MacAddress(other).address) is True
            except libjailnet.errors.InvalidMacAddress:
                return False
        return False

    def __hash__(self) -> int:
        """Return a hash of the normalized address."""
        return hash(self.address)

    def previous(self) -> 'MacAddress':
        """
        Return the hardware address decremented by one.

        The address is treated as a 48 bit number, so a zero byte borrows
        from the next higher one. 00:00:00:00:00:00 wraps to ff:ff:ff:ff:ff:ff.
        """
        value = (int(self) - 1) % (1 << 48)
        return MacAddress(f"{value:012x}", logger=self.logger)

    @property
    def is_locally_administered(self) -> bool:
        """Return True when the locally administered bit is set."""
        return (int(self.address[0:2], 16) & 0x02) == 0x02

    @property
    def is_multicast(self) -> bool:
        """Return True when the multicast bit is set."""
        return (int(self.address[0:2], 16) & 0x01) == 0x01

    def __str__(self) -> str:
        """Return the hardware address as string."""
        address = self.address
        mac_bytes = [address[i:(i + 2)] for i in range(0, len(address), 2)]
        return ":".join(mac_bytes)


def generate_random_mac() -> str:
    """
    Return a random unicast, locally administered hardware address.

    The address is formatted in uppercase with colon separators.
    """
    mac_bytes = bytearray(os.urandom(6))
    mac_bytes[0] &= 0xFE
    mac_bytes[0] |= 0x02
    return ":".join(f"{x:02X}" for x in mac_bytes)
