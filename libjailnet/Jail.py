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
"""Jail records as seen by the network synthesizer."""
import typing

import libjailnet.helpers
import libjailnet.Identifier
import libjailnet.NetworkAttachment

STATE_INHERITED = "inherited"
STATE_ISOLATED_EMPTY = "isolated-empty"
STATE_ISOLATED_ACTIVE = "isolated-active"


class Jail:
    """
    A jail and its network intent.

    Inherit flags and attachments are mutually exclusive: a jail that
    inherits the host network has no attachments and a jail with
    attachments inherits neither protocol.
    """

    attachments: typing.List['libjailnet.NetworkAttachment.NetworkAttachment']

    def __init__(
        self,
        ctid: int,
        name: str,
        mountpoint: typing.Optional[str]=None,
        inherit_ipv4: bool=False,
        inherit_ipv6: bool=False,
        memory: int=0,
        cores: int=0,
        cpuset: typing.Optional[typing.List[int]]=None,
        attachments: typing.Optional[typing.List[
            'libjailnet.NetworkAttachment.NetworkAttachment'
        ]]=None,
        identifier_length: int=libjailnet.Identifier.DEFAULT_LENGTH
    ) -> None:
        self.ctid = libjailnet.Identifier.validate_ctid(ctid)
        self.name = str(name)
        self.mountpoint = mountpoint
        self.inherit_ipv4 = libjailnet.helpers.parse_bool(inherit_ipv4)
        self.inherit_ipv6 = libjailnet.helpers.parse_bool(inherit_ipv6)
        self.memory = libjailnet.helpers.parse_int(memory)
        self.cores = libjailnet.helpers.parse_int(cores)
        self.cpuset = [libjailnet.helpers.parse_int(x) for x in cpuset or []]
        self.attachments = list(attachments) if attachments else []
        self.identifier_length = identifier_length

    @property
    def token(self) -> str:
        """Return the letter token used for interfaces and rctl rules."""
        return libjailnet.Identifier.derive(
            self.ctid,
            length=self.identifier_length
        )

    @property
    def hostname(self) -> str:
        """Return a valid hostname derived from the jail name."""
        return libjailnet.helpers.make_valid_hostname(self.name)

    @property
    def inherited(self) -> bool:
        """Return True when the jail uses the host network stack."""
        return (self.inherit_ipv4 or self.inherit_ipv6) is True

    @property
    def state(self) -> str:
        """Return the network state of the jail."""
        if self.inherited is True:
            return STATE_INHERITED
        if len(self.attachments) == 0:
            return STATE_ISOLATED_EMPTY
        return STATE_ISOLATED_ACTIVE

    def get_attachment(
        self,
        attachment_id: int
    ) -> typing.Optional['libjailnet.NetworkAttachment.NetworkAttachment']:
        """Return the attachment with the given id."""
        for attachment in self.attachments:
            if attachment.id == attachment_id:
                return attachment
        return None

    def get_attachment_by_switch(
        self,
        switch_id: int
    ) -> typing.Optional['libjailnet.NetworkAttachment.NetworkAttachment']:
        """Return the attachment to the given switch."""
        for attachment in self.attachments:
            if attachment.switch_id == switch_id:
                return attachment
        return None

    def to_dict(self) -> typing.Dict[str, typing.Any]:
        """Return the jail record without attachments."""
        return dict(
            ctid=self.ctid,
            name=self.name,
            mountpoint=self.mountpoint,
            inherit_ipv4=self.inherit_ipv4,
            inherit_ipv6=self.inherit_ipv6,
            memory=self.memory,
            cores=self.cores,
            cpuset=list(self.cpuset)
        )

    @classmethod
    def from_dict(
        cls,
        data: typing.Dict[str, typing.Any],
        attachments: typing.Optional[typing.List[
            'libjailnet.NetworkAttachment.NetworkAttachment'
        ]]=None,
        identifier_length: int=libjailnet.Identifier.DEFAULT_LENGTH
    ) -> 'Jail':
        """Create a Jail from its stored record."""
        return cls(
            attachments=attachments,
            identifier_length=identifier_length,
            **data
        )

    def __repr__(self) -> str:
        """Return a short description of the jail."""
        return f"<Jail ctid={self.ctid} name={self.name} state={self.state}>"
