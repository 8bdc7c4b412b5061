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
"""Connection of a jail to a switch."""
import typing

import libjailnet.helpers

ADDRESS_FIELDS = ("mac", "ipv4", "ipv4_gw", "ipv6", "ipv6_gw")


class NetworkAttachment:
    """
    A jail interface attached to a switch.

    Address values are references to network objects. A reference of 0
    means that the value is not set. Attachments are never changed in
    place, they are deleted and created again.
    """

    id: int
    ctid: int
    switch_id: int
    mac_id: int
    ipv4_id: int
    ipv4_gw_id: int
    ipv6_id: int
    ipv6_gw_id: int
    dhcp: bool
    slaac: bool

    def __init__(
        self,
        ctid: int,
        switch_id: int,
        mac_id: typing.Optional[int]=0,
        ipv4_id: typing.Optional[int]=0,
        ipv4_gw_id: typing.Optional[int]=0,
        ipv6_id: typing.Optional[int]=0,
        ipv6_gw_id: typing.Optional[int]=0,
        dhcp: bool=False,
        slaac: bool=False,
        id: int=0
    ) -> None:
        self.id = libjailnet.helpers.parse_object_id(id)
        self.ctid = libjailnet.helpers.parse_int(ctid)
        self.switch_id = libjailnet.helpers.parse_object_id(switch_id)
        self.mac_id = libjailnet.helpers.parse_object_id(mac_id)
        self.ipv4_id = libjailnet.helpers.parse_object_id(ipv4_id)
        self.ipv4_gw_id = libjailnet.helpers.parse_object_id(ipv4_gw_id)
        self.ipv6_id = libjailnet.helpers.parse_object_id(ipv6_id)
        self.ipv6_gw_id = libjailnet.helpers.parse_object_id(ipv6_gw_id)
        self.dhcp = libjailnet.helpers.parse_bool(dhcp)
        self.slaac = libjailnet.helpers.parse_bool(slaac)

    @property
    def has_static_ipv4(self) -> bool:
        """Return True when address and gateway are both referenced."""
        return (self.ipv4_id > 0) and (self.ipv4_gw_id > 0)

    @property
    def has_static_ipv6(self) -> bool:
        """Return True when address and gateway are both referenced."""
        return (self.ipv6_id > 0) and (self.ipv6_gw_id > 0)

    @property
    def ipv4_mode(self) -> str:
        """Return dhcp, static or none."""
        if self.dhcp is True:
            return "dhcp"
        if self.has_static_ipv4 is True:
            return "static"
        return "none"

    @property
    def ipv6_mode(self) -> str:
        """Return slaac, static or none."""
        if self.slaac is True:
            return "slaac"
        if self.has_static_ipv6 is True:
            return "static"
        return "none"

    def get_reference(self, field: str) -> int:
        """Return the network object id of an address field."""
        if field not in ADDRESS_FIELDS:
            raise KeyError(f"Invalid address field: {field}")
        return int(getattr(self, f"{field}_id"))

    @property
    def references(self) -> typing.Dict[str, int]:
        """Return all set address references by field name."""
        output = {}
        for field in ADDRESS_FIELDS:
            object_id = self.get_reference(field)
            if object_id > 0:
                output[field] = object_id
        return output

    def to_dict(self) -> typing.Dict[str, typing.Any]:
        """Return the attachment as JSON serializable dict."""
        return dict(
            id=self.id,
            ctid=self.ctid,
            switch_id=self.switch_id,
            mac_id=self.mac_id,
            ipv4_id=self.ipv4_id,
            ipv4_gw_id=self.ipv4_gw_id,
            ipv6_id=self.ipv6_id,
            ipv6_gw_id=self.ipv6_gw_id,
            dhcp=self.dhcp,
            slaac=self.slaac
        )

    @classmethod
    def from_dict(
        cls,
        data: typing.Dict[str, typing.Any]
    ) -> 'NetworkAttachment':
        """Create a NetworkAttachment from its dict representation."""
        return cls(**data)

    def __repr__(self) -> str:
        """Return a short description of the attachment."""
        return (
            f"<NetworkAttachment id={self.id} ctid={self.ctid} "
            f"switch={self.switch_id}>"
        )
