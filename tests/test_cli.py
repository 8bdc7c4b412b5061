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
"""Unit tests for the jailnet command line interface."""
import json
import os
import typing

import click.testing
import pytest

import libjailnet.helpers
import libjailnet.Jail
import libjailnet.cli


class CommandRunner:
	"""Invoke the jailnet command with a temporary host configuration."""

	def __init__(self, config_file: str) -> None:
		self.config_file = config_file
		self.runner = click.testing.CliRunner()

	def __call__(self, *args: str) -> click.testing.Result:
		return self.runner.invoke(
			libjailnet.cli.cli,
			["-c", self.config_file] + list(args)
		)


@pytest.fixture
def run(
	tmp_path: typing.Any,
	host_commands: 'conftest.FakeHostCommands',
	monkeypatch: typing.Any
) -> CommandRunner:
	"""Return a runner of the jailnet command as root user."""
	monkeypatch.setattr(os, "geteuid", lambda: 0)
	config_file = tmp_path / "jailnet.json"
	config_file.write_text(json.dumps(dict(
		data_dir=str(tmp_path / "jailnet"),
		log_level="error"
	)))
	return CommandRunner(str(config_file))


@pytest.fixture
def mountpoint(tmp_path: typing.Any) -> str:
	"""Return the root directory of jail 101."""
	path = tmp_path / "root" / "101"
	(path / "etc").mkdir(parents=True)
	return str(path)


class TestCommands(object):

	def test_attach_jail(
		self,
		run: CommandRunner,
		mountpoint: str
	) -> None:
		result = run("switch", "add", "--id", "5", "lan", "bridge0")
		assert result.exit_code == 0
		assert result.output.strip() == "5"

		result = run("create", "101", "web", mountpoint)
		assert result.exit_code == 0

		result = run("attach", "--dhcp", "--slaac", "101", "5")
		assert result.exit_code == 0

		result = run("show", "--directives", "101")
		assert result.exit_code == 0
		assert "\tvnet;" in result.output
		assert "\tvnet.interface += \"bzmci_5b\";" in result.output

		result = run("list", "-f", "json")
		assert result.exit_code == 0
		jails = json.loads(result.output)
		assert len(jails) == 1
		assert jails[0]["ctid"] == "101"
		assert jails[0]["token"] == "bzmci"
		assert jails[0]["state"] == libjailnet.Jail.STATE_ISOLATED_ACTIVE
		assert jails[0]["attachments"] == "1"

	def test_show_attachments(
		self,
		run: CommandRunner,
		mountpoint: str
	) -> None:
		run("switch", "add", "--id", "5", "lan", "bridge0")
		run("create", "101", "web", mountpoint)
		run("attach", "--dhcp", "--slaac", "101", "5")

		result = run("show", "-f", "csv", "101")
		assert result.exit_code == 0
		lines = result.output.strip().split("\n")
		assert lines[0] == "ID;SWITCH;MAC;IPV4;IPV4_GW;IPV6;IPV6_GW"
		values = lines[1].split(";")
		assert values[1] == "5"
		assert values[3] == "DHCP"
		assert values[5] == "SLAAC"

	def test_cpu_and_destroy(
		self,
		run: CommandRunner,
		mountpoint: str,
		tmp_path: typing.Any,
		monkeypatch: typing.Any
	) -> None:
		monkeypatch.setattr(libjailnet.helpers, "get_logical_cores", lambda: 2)
		run("switch", "add", "--id", "5", "lan", "bridge0")
		run("create", "--cores", "1", "101", "web", mountpoint)
		run("attach", "--dhcp", "--slaac", "101", "5")

		result = run("cpu", "--no-apply", "101", "2")
		assert result.exit_code == 0
		config_file = tmp_path / "jailnet" / "jails" / "101" / "101.conf"
		text = config_file.read_text()
		assert text.count("\texec.created += \"cpuset -l 0,1 -j bzmci\";") == 1

		result = run("cpu", "101", "3")
		assert result.exit_code == 1

		result = run("object", "list", "-f", "csv", "--no-header")
		assert "web-lan" in result.output

		result = run("destroy", "--delete-macs", "101")
		assert result.exit_code == 0
		assert config_file.exists() is False
		result = run("object", "list", "-f", "csv", "--no-header")
		assert "web-lan" not in result.output

	def test_network_objects(self, run: CommandRunner) -> None:
		result = run("object", "add", "gw4", "Host", "10.0.0.1")
		assert result.exit_code == 0
		object_id = result.output.strip()
		assert object_id.isdigit()

		result = run("object", "list", "-f", "list", "--no-header")
		assert result.exit_code == 0
		assert result.output.strip().split("\t")[:3] == [
			object_id,
			"gw4",
			"Host"
		]

	def test_invalid_object(self, run: CommandRunner) -> None:
		result = run("object", "add", "gw4", "Host", "10.0.0.0/24")
		assert result.exit_code == 1

	def test_attach_unknown_jail(self, run: CommandRunner) -> None:
		run("switch", "add", "--id", "5", "lan", "bridge0")
		result = run("attach", "--dhcp", "--slaac", "102", "5")
		assert result.exit_code == 1

	def test_root_commands_require_root(
		self,
		run: CommandRunner,
		monkeypatch: typing.Any
	) -> None:
		monkeypatch.setattr(os, "geteuid", lambda: 1000)
		result = run("switch", "list")
		assert result.exit_code == 1

	def test_list_without_root(
		self,
		run: CommandRunner,
		monkeypatch: typing.Any
	) -> None:
		monkeypatch.setattr(os, "geteuid", lambda: 1000)
		result = run("list", "-f", "csv")
		assert result.exit_code == 0
		header = "CTID;NAME;TOKEN;STATE;ATTACHMENTS;MEMORY"
		assert result.output.strip() == header
