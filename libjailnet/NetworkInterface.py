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
"""Model a host network interface."""
import typing

import libjailnet.helpers
import libjailnet.helpers_object


class NetworkInterface:
    """
    Model a host network interface.

    NetworkInterface abstracts ifconfig(8) invocations that create, rename
    and destroy interfaces on the host.
    """

    ifconfig_command = "/sbin/ifconfig"

    name: str
    settings: typing.Dict[str, str]
    extra_settings: typing.List[str]
    rename: bool
    create: bool

    def __init__(
        self,
        name: str,
        create: bool=False,
        rename: typing.Optional[str]=None,
        mac: typing.Optional[
            typing.Union[str, 'libjailnet.MacAddress.MacAddress']
        ]=None,
        extra_settings: typing.Optional[typing.List[str]]=None,
        auto_apply: bool=True,
        timeout: typing.Optional[float]=None,
        logger: typing.Optional['libjailnet.Logger.Logger']=None
    ) -> None:

        self.logger = libjailnet.helpers_object.init_logger(self, logger)

        self.name = name
        self.create = create
        self.timeout = timeout
        self.settings = {}
        if extra_settings is None:
            self.extra_settings = []
        else:
            self.extra_settings = extra_settings

        if mac is not None:
            self.settings["ether"] = str(mac)

        # rename interface when applying settings next time
        if isinstance(rename, str):
            self.rename = True
            self.settings["name"] = rename
        else:
            self.rename = False

        if auto_apply is True:
            self.apply()

    def apply(self) -> None:
        """Apply the interface settings."""
        command: typing.List[str] = [self.ifconfig_command, self.name]

        if self.create is True:
            command.append("create")

        for key, value in self.settings.items():
            command.append(key)
            command.append(value)

        command += self.extra_settings

        stdout = self._exec(command)

        # interface cloning prints the name of the new interface
        if self.create is True:
            self.name = stdout.strip()
            self.create = False

        # update name when the interface was renamed
        if self.rename is True:
            self.name = str(self.settings["name"])
            del self.settings["name"]
            self.rename = False

    def destroy(self) -> None:
        """Destroy the interface."""
        self._exec([self.ifconfig_command, self.name, "destroy"])

    def _exec(self, command: typing.List[str]) -> str:
        stdout, _, _ = libjailnet.helpers.exec(
            command,
            logger=self.logger,
            timeout=self.timeout
        )
        return str(stdout or "")

    def __str__(self) -> str:
        """Return the current interface name."""
        return self.name


def list_interfaces(
    logger: typing.Optional['libjailnet.Logger.Logger']=None,
    timeout: typing.Optional[float]=None
) -> typing.List[str]:
    """Return the names of all host interfaces."""
    stdout, _, _ = libjailnet.helpers.exec(
        [NetworkInterface.ifconfig_command, "-l"],
        logger=logger,
        timeout=timeout
    )
    return str(stdout or "").split()
