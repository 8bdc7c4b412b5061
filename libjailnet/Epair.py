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
"""Provision epair(4) devices of jail network attachments."""
import typing

import libjailnet.errors
import libjailnet.helpers_object
import libjailnet.NetworkInterface

# MyPy
import libjailnet.Jail  # noqa: F401


def get_epair_name(token: str, switch_id: int) -> str:
    """Return the epair name of a jail attachment without leg suffix."""
    return f"{token}_{switch_id}"


def bridge_membership_command(bridge: str, member: str) -> str:
    """Return a shell command that adds member to bridge unless present."""
    return (
        f"if ! ifconfig {bridge} | grep -qw {member}; "
        f"then ifconfig {bridge} addm {member}; fi"
    )


class EpairProvisioner:
    """
    Create and destroy the epair devices of jail attachments.

    An epair named `<token>_<switch>` consists of the host side a-leg
    `<token>_<switch>a` and the jail side b-leg `<token>_<switch>b`.
    """

    def __init__(
        self,
        logger: typing.Optional['libjailnet.Logger.Logger']=None,
        timeout: typing.Optional[float]=None
    ) -> None:
        self.logger = libjailnet.helpers_object.init_logger(self, logger)
        self.timeout = timeout

    def list_interfaces(self) -> typing.List[str]:
        """Return the names of all host interfaces."""
        try:
            return libjailnet.NetworkInterface.list_interfaces(
                logger=self.logger,
                timeout=self.timeout
            )
        except libjailnet.errors.CommandFailure as e:
            raise libjailnet.errors.EpairProvisioningFailed(
                epair="*",
                reason=f"listing interfaces failed: {e}",
                logger=self.logger
            )

    def ensure_epairs(
        self,
        jails: typing.Iterable['libjailnet.Jail.Jail']
    ) -> typing.List[str]:
        """
        Create missing epairs of all attachments of the given jails.

        Returns the names of the created epairs.
        """
        existing = self.list_interfaces()
        created = []
        for jail in jails:
            for attachment in jail.attachments:
                if attachment.switch_id <= 0:
                    continue
                name = get_epair_name(jail.token, attachment.switch_id)
                if f"{name}a" in existing:
                    continue
                self.create_epair(
                    name,
                    ctid=jail.ctid,
                    switch_id=attachment.switch_id
                )
                existing += [f"{name}a", f"{name}b"]
                created.append(name)
        return created

    def create_epair(
        self,
        name: str,
        ctid: typing.Optional[int]=None,
        switch_id: typing.Optional[int]=None
    ) -> None:
        """Create an epair and rename its legs to <name>a and <name>b."""
        self.logger.verbose(f"Creating epair {name}")
        try:
            epair = libjailnet.NetworkInterface.NetworkInterface(
                name="epair",
                create=True,
                timeout=self.timeout,
                logger=self.logger
            )
        except libjailnet.errors.CommandFailure as e:
            raise libjailnet.errors.EpairProvisioningFailed(
                epair=name,
                reason=str(e),
                ctid=ctid,
                switch_id=switch_id,
                logger=self.logger
            )

        leg_a = epair.name
        if (leg_a == "") or (leg_a.endswith("a") is False):
            raise libjailnet.errors.EpairProvisioningFailed(
                epair=name,
                reason=f"unexpected interface name '{leg_a}'",
                ctid=ctid,
                switch_id=switch_id,
                logger=self.logger
            )
        leg_b = f"{leg_a[:-1]}b"

        try:
            libjailnet.NetworkInterface.NetworkInterface(
                name=leg_a,
                rename=f"{name}a",
                timeout=self.timeout,
                logger=self.logger
            )
            libjailnet.NetworkInterface.NetworkInterface(
                name=leg_b,
                rename=f"{name}b",
                timeout=self.timeout,
                logger=self.logger
            )
        except libjailnet.errors.CommandFailure as e:
            self._destroy_unnamed(leg_a, f"{name}a")
            raise libjailnet.errors.EpairProvisioningFailed(
                epair=name,
                reason=str(e),
                ctid=ctid,
                switch_id=switch_id,
                logger=self.logger
            )

    def _destroy_unnamed(self, *candidates: str) -> None:
        existing = self.list_interfaces()
        for candidate in candidates:
            if candidate not in existing:
                continue
            try:
                libjailnet.NetworkInterface.NetworkInterface(
                    name=candidate,
                    auto_apply=False,
                    timeout=self.timeout,
                    logger=self.logger
                ).destroy()
            except libjailnet.errors.CommandFailure:
                self.logger.warn(f"Could not clean up interface {candidate}")
            return

    def delete_epair(
        self,
        name: str,
        ignore_missing: bool=False
    ) -> bool:
        """
        Destroy an epair by its a-leg.

        Returns False when the epair did not exist and ignore_missing is
        set, otherwise a missing epair raises EpairNotFound.
        """
        leg_a = f"{name}a"
        if leg_a not in self.list_interfaces():
            if ignore_missing is True:
                self.logger.warn(
                    f"Epair {name} does not exist - considered destroyed"
                )
                return False
            raise libjailnet.errors.EpairNotFound(
                epair=name,
                logger=self.logger
            )

        self.logger.verbose(f"Destroying epair {name}")
        try:
            libjailnet.NetworkInterface.NetworkInterface(
                name=leg_a,
                auto_apply=False,
                timeout=self.timeout,
                logger=self.logger
            ).destroy()
        except libjailnet.errors.CommandFailure as e:
            raise libjailnet.errors.EpairProvisioningFailed(
                epair=name,
                reason=str(e),
                logger=self.logger
            )
        return True

    def bridge_membership_command(self, bridge: str, member: str) -> str:
        """Return the idempotent bridge membership command of a-leg."""
        return bridge_membership_command(bridge, member)
