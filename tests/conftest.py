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
"""Unit test configuration."""
import json
import typing
import os.path

import pytest

import libjailnet.errors
import libjailnet.helpers
import libjailnet.Host
import libjailnet.Logger


class FakeHostCommands:
    """
    Record host commands and emulate ifconfig, jls, ps and rctl.

    Cloned epairs are tracked in the list of host interfaces, so that
    renaming and destroying them is visible to later `ifconfig -l` calls.
    """

    def __init__(self) -> None:
        self.commands: typing.List[typing.List[str]] = []
        self.interfaces: typing.List[str] = ["lo0", "em0", "bridge0"]
        self.epair_counter = 0
        self.failing: typing.List[str] = []
        self.jids: typing.Dict[str, int] = {}
        self.processes: typing.List[typing.Dict[str, str]] = []

    @property
    def command_lines(self) -> typing.List[str]:
        """Return the recorded commands as strings."""
        return [" ".join(x) for x in self.commands]

    def fail_on(self, fragment: str) -> None:
        """Let all commands that contain the fragment fail."""
        self.failing.append(fragment)

    def __call__(
        self,
        command: typing.List[str],
        logger: typing.Optional['libjailnet.Logger.Logger']=None,
        ignore_error: bool=False,
        timeout: typing.Optional[float]=None,
        **subprocess_args: typing.Any
    ) -> typing.Tuple[typing.Optional[str], typing.Optional[str], int]:
        command = list(command)
        self.commands.append(command)
        command_str = " ".join(command)

        for fragment in self.failing:
            if fragment in command_str:
                if ignore_error is True:
                    return "", "failed", 1
                raise libjailnet.errors.CommandFailure(
                    returncode=1,
                    command=command_str,
                    stderr="failed"
                )

        program = os.path.basename(command[0])
        if program == "ifconfig":
            return self._ifconfig(command[1:]), "", 0
        if program == "jls":
            token = command[2]
            if token not in self.jids:
                if ignore_error is True:
                    return "", "jail not found", 1
                raise libjailnet.errors.CommandFailure(
                    returncode=1,
                    command=command_str
                )
            return str(self.jids[token]), "", 0
        if program == "ps":
            output = {"process-information": {"process": self.processes}}
            return json.dumps(output), "", 0
        return "", "", 0

    def _ifconfig(self, args: typing.List[str]) -> str:
        if args == ["-l"]:
            return " ".join(self.interfaces)
        if args == ["epair", "create"]:
            name = f"epair{self.epair_counter}"
            self.epair_counter += 1
            self.interfaces += [f"{name}a", f"{name}b"]
            return f"{name}a"
        if (len(args) == 3) and (args[1] == "name"):
            index = self.interfaces.index(args[0])
            self.interfaces[index] = args[2]
            return args[2]
        if (len(args) == 2) and (args[1] == "destroy"):
            base = args[0][:-1]
            self.interfaces = [
                x for x in self.interfaces
                if x not in (f"{base}a", f"{base}b")
            ]
        return ""


@pytest.fixture
def logger() -> 'libjailnet.Logger.Logger':
    """Make the libjailnet Logger available to the tests."""
    return libjailnet.Logger.Logger()


@pytest.fixture
def host_commands(monkeypatch: typing.Any) -> FakeHostCommands:
    """Replace the execution of host commands with a recorder."""
    fake = FakeHostCommands()
    monkeypatch.setattr(libjailnet.helpers, "exec", fake)
    return fake


@pytest.fixture
def host_config_data(tmp_path: typing.Any) -> typing.Dict[str, typing.Any]:
    """Return a host configuration that stores all data below tmp_path."""
    return dict(data_dir=str(tmp_path / "jailnet"))


@pytest.fixture
def host(
    host_config_data: typing.Dict[str, typing.Any],
    host_commands: FakeHostCommands,
    logger: 'libjailnet.Logger.Logger'
) -> 'libjailnet.Host.HostGenerator':
    """Make a libjailnet host with temporary directories available."""
    host = libjailnet.Host.HostGenerator(
        config=host_config_data,
        logger=logger
    )
    host.ensure_directories()
    return host


@pytest.fixture
def database(
    host: 'libjailnet.Host.HostGenerator'
) -> 'libjailnet.Database.Database':
    """Return the database of the test host."""
    return host.database


@pytest.fixture
def switch(
    host: 'libjailnet.Host.HostGenerator'
) -> 'libjailnet.Switches.Switch':
    """Register the switch 5 backed by bridge0."""
    return host.switches.create(
        name="lan",
        bridge_name="bridge0",
        switch_id=5
    )


@pytest.fixture
def second_switch(
    host: 'libjailnet.Host.HostGenerator'
) -> 'libjailnet.Switches.Switch':
    """Register the switch 6 backed by bridge1."""
    return host.switches.create(
        name="dmz",
        bridge_name="bridge1",
        switch_id=6
    )


class AddressObjects(typing.NamedTuple):
    """Ids of network objects of a static attachment."""

    ipv4: int
    ipv4_gw: int
    ipv6: int
    ipv6_gw: int


def create_address_objects(
    host: 'libjailnet.Host.HostGenerator',
    prefix: str,
    ipv4: str,
    ipv6: str
) -> AddressObjects:
    """Create address objects that share their gateways by name."""
    objects = host.objects
    gateway_ids = {}
    for name, value in (("gw4", "10.0.0.1"), ("gw6", "2001:db8::1")):
        existing = [x for x in objects.list() if x.name == name]
        if len(existing) > 0:
            gateway_ids[name] = existing[0].id
        else:
            gateway_ids[name] = objects.create_object(
                name,
                "Host",
                [value]
            ).id
    return AddressObjects(
        ipv4=objects.create_object(f"{prefix}-v4", "Network", [ipv4]).id,
        ipv4_gw=gateway_ids["gw4"],
        ipv6=objects.create_object(f"{prefix}-v6", "Host", [ipv6]).id,
        ipv6_gw=gateway_ids["gw6"]
    )


@pytest.fixture
def addresses(
    host: 'libjailnet.Host.HostGenerator'
) -> AddressObjects:
    """Return static address objects for a first attachment."""
    return create_address_objects(
        host,
        "web",
        "10.0.0.5/24",
        "2001:db8::5"
    )


@pytest.fixture
def second_addresses(
    host: 'libjailnet.Host.HostGenerator',
    addresses: AddressObjects
) -> AddressObjects:
    """Return static address objects for a second attachment."""
    return create_address_objects(
        host,
        "db",
        "10.0.1.7/24",
        "2001:db8:1::7"
    )


@pytest.fixture
def new_jail(
    host: 'libjailnet.Host.HostGenerator',
    logger: 'libjailnet.Logger.Logger',
    tmp_path: typing.Any
) -> 'libjailnet.JailNetwork.JailNetwork':
    """Create the jail 101 without network and return its synthesizer."""
    import libjailnet.JailNetwork
    mountpoint = tmp_path / "root" / "101"
    (mountpoint / "etc").mkdir(parents=True)
    jail_network = libjailnet.JailNetwork.JailNetwork(
        101,
        host=host,
        logger=logger
    )
    jail_network.create(name="web", mountpoint=str(mountpoint))
    return jail_network
