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
"""Unit tests for the network synthesis of jails."""
import typing
import os.path

import pytest

import libjailnet.Database
import libjailnet.errors
import libjailnet.events
import libjailnet.helpers
import libjailnet.Jail
import libjailnet.JailNetwork
import libjailnet.MacAddress
import libjailnet.Config.Jail.File.JailConf

JailConf = libjailnet.Config.Jail.File.JailConf


def read_config(jail_network: 'libjailnet.JailNetwork.JailNetwork') -> str:
	"""Return the current jail.conf text of a jail."""
	return str(jail_network.config_file.read())


def network_lines(
	jail_network: 'libjailnet.JailNetwork.JailNetwork'
) -> typing.List[str]:
	"""Return the network directives of the jail.conf file."""
	config = JailConf.JailConf(read_config(jail_network))
	return [str(x) for x in config.network_directives]


class TestJailCreation(object):

	def test_creates_isolated_empty_jail(
		self,
		new_jail: 'libjailnet.JailNetwork.JailNetwork'
	) -> None:
		jail = new_jail.jail
		assert jail.state == libjailnet.Jail.STATE_ISOLATED_EMPTY
		assert jail.token == "bzmci"

		text = read_config(new_jail)
		assert text.startswith("bzmci {\n\t$ctid = \"bzmci\";\n")
		assert text.endswith("\tip4=disable;\n\tip6=disable;\n}\n")
		assert "\tdevfs_ruleset=\"8181\";" in text
		assert "\thost.hostname = \"web\";" in text

	def test_empty_state_has_only_disable_directives(
		self,
		new_jail: 'libjailnet.JailNetwork.JailNetwork'
	) -> None:
		assert network_lines(new_jail) == [
			"\tip4=disable;",
			"\tip6=disable;"
		]
		assert new_jail.render_network_directives() == [
			"\tip4=disable;",
			"\tip6=disable;"
		]

	def test_creates_jail_with_limits(
		self,
		host: 'libjailnet.Host.HostGenerator',
		logger: 'libjailnet.Logger.Logger'
	) -> None:
		jail_network = libjailnet.JailNetwork.JailNetwork(
			102,
			host=host,
			logger=logger
		)
		jail_network.create(
			name="Data Base",
			mountpoint="/jails/102",
			memory=256 * 1024 * 1024,
			cpuset=[0, 1],
			inherit_ipv4=True
		)

		jail = jail_network.jail
		token = jail.token
		assert jail.cores == 2
		assert jail.state == libjailnet.Jail.STATE_INHERITED

		text = read_config(jail_network)
		assert "\thost.hostname = \"data-base\";" in text
		assert f"\texec.created += \"cpuset -l 0,1 -j {token}\";" in text
		assert (
			f"\texec.poststart += \"rctl -a jail:{token}:memoryuse:deny=256M\";"
			in text
		)
		assert f"\texec.poststop += \"rctl -r jail:{token}\";" in text
		assert network_lines(jail_network) == ["\tip4=inherit;"]

	def test_cannot_create_jail_twice(
		self,
		new_jail: 'libjailnet.JailNetwork.JailNetwork'
	) -> None:
		with pytest.raises(libjailnet.errors.JailAlreadyExists):
			new_jail.create(name="web", mountpoint="/jails/101")

	def test_rejects_relative_mountpoints(
		self,
		host: 'libjailnet.Host.HostGenerator',
		logger: 'libjailnet.Logger.Logger'
	) -> None:
		jail_network = libjailnet.JailNetwork.JailNetwork(
			102,
			host=host,
			logger=logger
		)
		with pytest.raises(libjailnet.errors.ValidationError):
			jail_network.create(name="db", mountpoint="jails/102")
		assert jail_network.config_file.exists is False

	def test_rejects_invalid_jail_ids(
		self,
		host: 'libjailnet.Host.HostGenerator'
	) -> None:
		with pytest.raises(libjailnet.errors.InvalidJailId):
			libjailnet.JailNetwork.JailNetwork(0, host=host)


class TestAttachments(object):

	def test_dhcp_and_slaac_attachment(
		self,
		new_jail: 'libjailnet.JailNetwork.JailNetwork',
		switch: 'libjailnet.Switches.Switch',
		host_commands: 'conftest.FakeHostCommands'
	) -> None:
		events = new_jail.add_attachment(5, dhcp=True, slaac=True)

		assert isinstance(events[-1], libjailnet.events.JailNetworkAttach)
		assert events[-1].done is True

		lines = network_lines(new_jail)
		assert lines[0] == "\tvnet;"
		assert lines[1] == "\tvnet.interface += \"bzmci_5b\";"
		assert "\texec.start += \"dhclient bzmci_5b\";" in lines
		assert (
			"\texec.start += \"sysrc ifconfig_bzmci_5b=\\\"DHCP\\\"\";"
			in lines
		)
		assert (
			"\texec.start += \"ifconfig bzmci_5b inet6 accept_rtadv up\";"
			in lines
		)
		assert (
			"\texec.start += "
			"\"sysrc ifconfig_bzmci_5b_ipv6=\\\"inet6 accept_rtadv\\\"\";"
			in lines
		)
		assert "ip4=disable" not in read_config(new_jail)
		assert "bzmci_5a" in host_commands.interfaces

	def test_generates_mac_object(
		self,
		host: 'libjailnet.Host.HostGenerator',
		new_jail: 'libjailnet.JailNetwork.JailNetwork',
		switch: 'libjailnet.Switches.Switch'
	) -> None:
		new_jail.add_attachment(5, dhcp=True, slaac=True)

		attachment = new_jail.jail.attachments[0]
		mac_object = host.objects.get(attachment.mac_id)
		assert mac_object.name == "web-lan"
		assert mac_object.type == "Mac"

		mac = libjailnet.MacAddress.MacAddress(mac_object.values[0])
		lines = network_lines(new_jail)
		assert (
			f"\texec.prestart += \"ifconfig bzmci_5b ether {mac} up\";"
			in lines
		)
		assert (
			"\texec.prestart += "
			f"\"ifconfig bzmci_5a ether {mac.previous()} up\";"
			in lines
		)
		assert (
			"\texec.prestart += \"if ! ifconfig bridge0 | grep -qw bzmci_5a; "
			"then ifconfig bridge0 addm bzmci_5a; fi\";"
			in lines
		)

	def test_static_attachment(
		self,
		new_jail: 'libjailnet.JailNetwork.JailNetwork',
		switch: 'libjailnet.Switches.Switch',
		addresses: 'conftest.AddressObjects'
	) -> None:
		new_jail.add_attachment(
			5,
			ipv4_id=addresses.ipv4,
			ipv4_gw_id=addresses.ipv4_gw,
			ipv6_id=addresses.ipv6,
			ipv6_gw_id=addresses.ipv6_gw
		)

		assert network_lines(new_jail)[5:] == [
			"\texec.start += "
			"\"ifconfig bzmci_5b inet 10.0.0.5 netmask 255.255.255.0\";",
			"\texec.start += \"route add default 10.0.0.1\";",
			"\texec.start += \"sysrc ifconfig_bzmci_5b="
			"\\\"inet 10.0.0.5 netmask 255.255.255.0\\\"\";",
			"\texec.start += \"ifconfig bzmci_5b inet6 2001:db8::5\";",
			"\texec.start += "
			"\"sysrc ipv6_defaultrouter=\\\"2001:db8::1\\\"\";",
			"\texec.start += "
			"\"sysrc ifconfig_bzmci_5b_ipv6=\\\"inet6 2001:db8::5\\\"\";"
		]

	def test_only_first_attachment_sets_default_routes(
		self,
		new_jail: 'libjailnet.JailNetwork.JailNetwork',
		switch: 'libjailnet.Switches.Switch',
		second_switch: 'libjailnet.Switches.Switch',
		addresses: 'conftest.AddressObjects',
		second_addresses: 'conftest.AddressObjects'
	) -> None:
		for switch_id, objects in ((5, addresses), (6, second_addresses)):
			new_jail.add_attachment(
				switch_id,
				ipv4_id=objects.ipv4,
				ipv4_gw_id=objects.ipv4_gw,
				ipv6_id=objects.ipv6,
				ipv6_gw_id=objects.ipv6_gw
			)

		text = read_config(new_jail)
		assert text.count("route add default") == 1
		assert text.count("ipv6_defaultrouter") == 1

		lines = network_lines(new_jail)
		route_index = lines.index(
			"\texec.start += \"route add default 10.0.0.1\";"
		)
		second_index = lines.index(
			"\texec.start += "
			"\"ifconfig bzmci_6b inet 10.0.1.7 netmask 255.255.255.0\";"
		)
		assert route_index < second_index
		assert lines[1:3] == [
			"\tvnet.interface += \"bzmci_5b\";",
			"\tvnet.interface += \"bzmci_6b\";"
		]

	def test_switch_can_only_be_attached_once(
		self,
		new_jail: 'libjailnet.JailNetwork.JailNetwork',
		switch: 'libjailnet.Switches.Switch',
		host_commands: 'conftest.FakeHostCommands'
	) -> None:
		new_jail.add_attachment(5, dhcp=True, slaac=True)
		attachment = new_jail.jail.attachments[0]
		text = read_config(new_jail)
		interfaces = list(host_commands.interfaces)

		with pytest.raises(libjailnet.errors.DuplicateSwitchAttachment):
			new_jail.add_attachment(5, dhcp=True, slaac=True)

		attachments = new_jail.jail.attachments
		assert len(attachments) == 1
		assert attachments[0].to_dict() == attachment.to_dict()
		assert read_config(new_jail) == text
		assert host_commands.epair_counter == 1
		assert host_commands.interfaces == interfaces

	def test_static_addresses_require_gateways(
		self,
		new_jail: 'libjailnet.JailNetwork.JailNetwork',
		switch: 'libjailnet.Switches.Switch',
		addresses: 'conftest.AddressObjects'
	) -> None:
		with pytest.raises(libjailnet.errors.MissingAddressPair) as e:
			new_jail.add_attachment(5, ipv4_id=addresses.ipv4, slaac=True)
		assert e.value.field == "ipv4_gw"
		assert e.value.switch_id == 5

		with pytest.raises(libjailnet.errors.MissingAddressPair) as e:
			new_jail.add_attachment(5, dhcp=True)
		assert e.value.field == "ipv6"

	def test_addresses_cannot_be_shared(
		self,
		host: 'libjailnet.Host.HostGenerator',
		logger: 'libjailnet.Logger.Logger',
		new_jail: 'libjailnet.JailNetwork.JailNetwork',
		switch: 'libjailnet.Switches.Switch',
		addresses: 'conftest.AddressObjects'
	) -> None:
		new_jail.add_attachment(
			5,
			ipv4_id=addresses.ipv4,
			ipv4_gw_id=addresses.ipv4_gw,
			slaac=True
		)

		other_jail = libjailnet.JailNetwork.JailNetwork(
			102,
			host=host,
			logger=logger
		)
		other_jail.create(name="other", mountpoint="/jails/102")
		with pytest.raises(libjailnet.errors.NetworkObjectInUse) as e:
			other_jail.add_attachment(
				5,
				ipv4_id=addresses.ipv4,
				ipv4_gw_id=addresses.ipv4_gw,
				slaac=True
			)
		assert e.value.field == "ipv4"

	def test_unknown_switch(
		self,
		new_jail: 'libjailnet.JailNetwork.JailNetwork'
	) -> None:
		with pytest.raises(libjailnet.errors.SwitchNotFound) as e:
			new_jail.add_attachment(9, dhcp=True, slaac=True)
		assert e.value.ctid == 101

	def test_detach(
		self,
		new_jail: 'libjailnet.JailNetwork.JailNetwork',
		switch: 'libjailnet.Switches.Switch',
		host_commands: 'conftest.FakeHostCommands'
	) -> None:
		new_jail.add_attachment(5, dhcp=True, slaac=True)
		attachment = new_jail.jail.attachments[0]

		new_jail.delete_attachment(attachment.id)

		assert new_jail.jail.attachments == []
		assert network_lines(new_jail) == [
			"\tip4=disable;",
			"\tip6=disable;"
		]
		assert "bzmci_5a" not in host_commands.interfaces

		with pytest.raises(libjailnet.errors.AttachmentNotFound):
			new_jail.delete_attachment(attachment.id)


class TestInheritance(object):

	def test_inherit_removes_attachments(
		self,
		new_jail: 'libjailnet.JailNetwork.JailNetwork',
		switch: 'libjailnet.Switches.Switch',
		host_commands: 'conftest.FakeHostCommands'
	) -> None:
		new_jail.add_attachment(5, dhcp=True, slaac=True)
		new_jail.inherit_network(ipv4=True, ipv6=False)

		jail = new_jail.jail
		assert jail.attachments == []
		assert jail.state == libjailnet.Jail.STATE_INHERITED

		text = read_config(new_jail)
		assert "\tip4=inherit;" in text
		assert "\tvnet;" not in text
		assert network_lines(new_jail) == ["\tip4=inherit;"]
		assert "bzmci_5a" not in host_commands.interfaces

	def test_inherit_requires_a_protocol(
		self,
		new_jail: 'libjailnet.JailNetwork.JailNetwork'
	) -> None:
		with pytest.raises(libjailnet.errors.InvalidInheritRequest):
			new_jail.inherit_network(ipv4=False, ipv6=False)

	def test_inherited_jails_cannot_be_attached(
		self,
		new_jail: 'libjailnet.JailNetwork.JailNetwork',
		switch: 'libjailnet.Switches.Switch'
	) -> None:
		new_jail.inherit_network(ipv4=True, ipv6=True)
		with pytest.raises(libjailnet.errors.JailNetworkInherited):
			new_jail.add_attachment(5, dhcp=True, slaac=True)
		assert network_lines(new_jail) == [
			"\tip4=inherit;",
			"\tip6=inherit;"
		]

	def test_inherit_strips_rc_conf(
		self,
		new_jail: 'libjailnet.JailNetwork.JailNetwork'
	) -> None:
		rc_conf = os.path.join(str(new_jail.jail.mountpoint), "etc/rc.conf")
		with open(rc_conf, "w", encoding="UTF-8") as f:
			f.write("sshd_enable=\"YES\"\nifconfig_bzmci_5b=\"DHCP\"\n")

		new_jail.inherit_network(ipv4=True)

		with open(rc_conf, "r", encoding="UTF-8") as f:
			assert f.read() == "sshd_enable=\"YES\"\n"

	def test_disinherit(
		self,
		new_jail: 'libjailnet.JailNetwork.JailNetwork'
	) -> None:
		new_jail.inherit_network(ipv6=True)
		new_jail.disinherit_network()

		assert new_jail.jail.state == libjailnet.Jail.STATE_ISOLATED_EMPTY
		assert network_lines(new_jail) == [
			"\tip4=disable;",
			"\tip6=disable;"
		]


class TestRegeneration(object):

	def test_regenerate_is_idempotent(
		self,
		new_jail: 'libjailnet.JailNetwork.JailNetwork',
		switch: 'libjailnet.Switches.Switch',
		addresses: 'conftest.AddressObjects'
	) -> None:
		new_jail.add_attachment(
			5,
			ipv4_id=addresses.ipv4,
			ipv4_gw_id=addresses.ipv4_gw,
			slaac=True
		)
		first_text = read_config(new_jail)

		new_jail.regenerate()
		second_text = read_config(new_jail)
		new_jail.regenerate()

		assert first_text == second_text
		assert read_config(new_jail) == second_text

	def test_regenerate_keeps_custom_lines(
		self,
		new_jail: 'libjailnet.JailNetwork.JailNetwork',
		switch: 'libjailnet.Switches.Switch'
	) -> None:
		text = read_config(new_jail).replace(
			"\tpersist;\n",
			"\tpersist;\n\t# managed by hand\n\tallow.mount;\n"
		)
		new_jail.config_file.write(text)

		new_jail.add_attachment(5, dhcp=True, slaac=True)
		new_jail.regenerate()

		output = read_config(new_jail)
		assert "\tpersist;\n\t# managed by hand\n\tallow.mount;\n" in output
		assert "\tip4=disable;" not in output

	def test_regenerate_replaces_stale_directives(
		self,
		new_jail: 'libjailnet.JailNetwork.JailNetwork'
	) -> None:
		text = read_config(new_jail).replace(
			"\tip4=disable;\n",
			"\tip4=disable;\n\texec.start += \"route add default 10.9.9.9\";\n"
		)
		new_jail.config_file.write(text)

		new_jail.regenerate()

		assert "10.9.9.9" not in read_config(new_jail)

	def test_unresolvable_objects_fail_regeneration(
		self,
		host: 'libjailnet.Host.HostGenerator',
		new_jail: 'libjailnet.JailNetwork.JailNetwork',
		switch: 'libjailnet.Switches.Switch',
		addresses: 'conftest.AddressObjects'
	) -> None:
		new_jail.add_attachment(
			5,
			ipv4_id=addresses.ipv4,
			ipv4_gw_id=addresses.ipv4_gw,
			slaac=True
		)
		text = read_config(new_jail)
		with host.database.transaction() as transaction:
			transaction.document["objects"][str(addresses.ipv4)]["values"] = [
				"10.0.0.5/24",
				"10.0.0.6/24"
			]

		with pytest.raises(libjailnet.errors.ObjectResolutionFailed) as e:
			new_jail.regenerate()

		assert e.value.field == "ipv4"
		assert e.value.switch_id == 5
		assert read_config(new_jail) == text


class TestFailureAtomicity(object):

	def test_failed_epair_creation_changes_nothing(
		self,
		new_jail: 'libjailnet.JailNetwork.JailNetwork',
		switch: 'libjailnet.Switches.Switch',
		host_commands: 'conftest.FakeHostCommands'
	) -> None:
		text = read_config(new_jail)
		host_commands.fail_on("epair create")

		with pytest.raises(libjailnet.errors.EpairProvisioningFailed):
			new_jail.add_attachment(5, dhcp=True, slaac=True)

		assert read_config(new_jail) == text
		assert new_jail.jail.attachments == []

	def test_invalid_address_changes_nothing(
		self,
		host: 'libjailnet.Host.HostGenerator',
		new_jail: 'libjailnet.JailNetwork.JailNetwork',
		switch: 'libjailnet.Switches.Switch',
		host_commands: 'conftest.FakeHostCommands'
	) -> None:
		text = read_config(new_jail)
		ipv6_as_ipv4 = host.objects.create_object("v6", "Host", ["fe80::1"])
		gateway = host.objects.create_object("gw", "Host", ["10.0.0.1"])

		with pytest.raises(libjailnet.errors.ObjectResolutionFailed):
			new_jail.add_attachment(
				5,
				ipv4_id=ipv6_as_ipv4.id,
				ipv4_gw_id=gateway.id,
				slaac=True
			)

		assert read_config(new_jail) == text
		assert new_jail.jail.attachments == []
		assert host_commands.epair_counter == 0

	def test_failed_write_destroys_new_epairs(
		self,
		monkeypatch: typing.Any,
		new_jail: 'libjailnet.JailNetwork.JailNetwork',
		switch: 'libjailnet.Switches.Switch',
		host_commands: 'conftest.FakeHostCommands'
	) -> None:
		def write(self: typing.Any, text: str) -> str:
			raise libjailnet.errors.JailConfigWriteError(
				ctid=101,
				path=self.path,
				reason="no space left on device"
			)

		monkeypatch.setattr(JailConf.JailConfFile, "write", write)

		with pytest.raises(libjailnet.errors.JailConfigWriteError):
			new_jail.add_attachment(5, dhcp=True, slaac=True)

		assert host_commands.epair_counter == 1
		assert "bzmci_5a" not in host_commands.interfaces
		assert new_jail.jail.attachments == []

	def test_failed_commit_restores_config(
		self,
		monkeypatch: typing.Any,
		new_jail: 'libjailnet.JailNetwork.JailNetwork',
		switch: 'libjailnet.Switches.Switch',
		host_commands: 'conftest.FakeHostCommands',
		host: 'libjailnet.Host.HostGenerator',
		logger: 'libjailnet.Logger.Logger'
	) -> None:
		text = read_config(new_jail)

		def insert_attachment(self: typing.Any, attachment: typing.Any) -> int:
			raise libjailnet.errors.DatabaseError(
				path="jailnet.json",
				reason="read-only file system"
			)

		monkeypatch.setattr(
			libjailnet.Database.DatabaseTransaction,
			"insert_attachment",
			insert_attachment
		)

		generator = libjailnet.JailNetwork.JailNetworkGenerator(
			101,
			host=host,
			logger=logger
		)
		events: typing.List['libjailnet.events.JailNetEvent'] = []
		with pytest.raises(libjailnet.errors.DatabaseError):
			for event in generator.add_attachment(5, dhcp=True, slaac=True):
				events.append(event)

		assert read_config(new_jail) == text
		assert "bzmci_5a" not in host_commands.interfaces
		assert new_jail.jail.attachments == []
		assert host_commands.epair_counter == 1

		failed_event = events[-1]
		assert isinstance(failed_event, libjailnet.events.JailNetworkAttach)
		assert isinstance(failed_event.error, libjailnet.errors.DatabaseError)
		assert failed_event.reverted is True

	def test_failed_restore_does_not_stop_rollback(
		self,
		monkeypatch: typing.Any,
		new_jail: 'libjailnet.JailNetwork.JailNetwork',
		switch: 'libjailnet.Switches.Switch',
		host_commands: 'conftest.FakeHostCommands',
		host: 'libjailnet.Host.HostGenerator',
		logger: 'libjailnet.Logger.Logger'
	) -> None:
		def insert_attachment(self: typing.Any, attachment: typing.Any) -> int:
			raise libjailnet.errors.DatabaseError(
				path="jailnet.json",
				reason="read-only file system"
			)

		monkeypatch.setattr(
			libjailnet.Database.DatabaseTransaction,
			"insert_attachment",
			insert_attachment
		)

		ConfigTextFile = libjailnet.Config.Jail.File.ConfigTextFile
		original_write_text = ConfigTextFile.write_text
		written: typing.List[str] = []

		def write_text(self: typing.Any, content: str) -> None:
			written.append(content)
			if len(written) > 1:
				raise PermissionError("restore failed")
			original_write_text(self, content)

		monkeypatch.setattr(ConfigTextFile, "write_text", write_text)

		generator = libjailnet.JailNetwork.JailNetworkGenerator(
			101,
			host=host,
			logger=logger
		)
		events: typing.List['libjailnet.events.JailNetEvent'] = []
		with pytest.raises(libjailnet.errors.DatabaseError):
			for event in generator.add_attachment(5, dhcp=True, slaac=True):
				events.append(event)

		assert len(written) == 2
		assert "bzmci_5a" not in host_commands.interfaces
		assert new_jail.jail.attachments == []

		failed_event = events[-1]
		assert isinstance(failed_event.error, libjailnet.errors.DatabaseError)
		assert len(failed_event.rollback_errors) == 1
		assert isinstance(
			failed_event.rollback_errors[0],
			libjailnet.errors.JailConfigWriteError
		)

	def test_rollback_runs_while_the_jail_is_locked(
		self,
		monkeypatch: typing.Any,
		host: 'libjailnet.Host.HostGenerator',
		new_jail: 'libjailnet.JailNetwork.JailNetwork',
		switch: 'libjailnet.Switches.Switch'
	) -> None:
		def insert_attachment(self: typing.Any, attachment: typing.Any) -> int:
			raise libjailnet.errors.DatabaseError(
				path="jailnet.json",
				reason="read-only file system"
			)

		monkeypatch.setattr(
			libjailnet.Database.DatabaseTransaction,
			"insert_attachment",
			insert_attachment
		)

		original_restore = JailConf.JailConfFile.restore
		lock_states: typing.List[bool] = []

		def restore(self: typing.Any, text: typing.Optional[str]) -> None:
			lock_states.append(host.locks.get(101).locked())
			original_restore(self, text)

		monkeypatch.setattr(JailConf.JailConfFile, "restore", restore)

		with pytest.raises(libjailnet.errors.DatabaseError):
			new_jail.add_attachment(5, dhcp=True, slaac=True)

		assert lock_states == [True]
		assert host.locks.get(101).locked() is False

	def test_failed_detach_recreates_epair(
		self,
		monkeypatch: typing.Any,
		new_jail: 'libjailnet.JailNetwork.JailNetwork',
		switch: 'libjailnet.Switches.Switch',
		host_commands: 'conftest.FakeHostCommands'
	) -> None:
		new_jail.add_attachment(5, dhcp=True, slaac=True)
		attachment = new_jail.jail.attachments[0]
		text = read_config(new_jail)

		def delete_attachment(self: typing.Any, attachment_id: int) -> None:
			raise libjailnet.errors.DatabaseError(
				path="jailnet.json",
				reason="read-only file system"
			)

		monkeypatch.setattr(
			libjailnet.Database.DatabaseTransaction,
			"delete_attachment",
			delete_attachment
		)

		with pytest.raises(libjailnet.errors.DatabaseError):
			new_jail.delete_attachment(attachment.id)

		assert read_config(new_jail) == text
		assert "bzmci_5a" in host_commands.interfaces
		assert len(new_jail.jail.attachments) == 1


class TestMemoryLimit(object):

	def test_updates_memory_limit(
		self,
		new_jail: 'libjailnet.JailNetwork.JailNetwork',
		host_commands: 'conftest.FakeHostCommands'
	) -> None:
		new_jail.update_memory_limit(256 * 1024 * 1024)
		new_jail.update_memory_limit(512 * 1024 * 1024 - 1)

		text = read_config(new_jail)
		assert "memoryuse:deny=256M" not in text
		assert text.count(
			"\texec.poststart += \"rctl -a jail:bzmci:memoryuse:deny=512M\";"
		) == 1
		assert network_lines(new_jail) == [
			"\tip4=disable;",
			"\tip6=disable;"
		]
		assert new_jail.jail.memory == 512 * 1024 * 1024 - 1
		assert (
			"/usr/bin/rctl -a jail:bzmci:memoryuse:deny=512M"
			in host_commands.command_lines
		)

	def test_can_skip_applying_the_limit(
		self,
		new_jail: 'libjailnet.JailNetwork.JailNetwork',
		host_commands: 'conftest.FakeHostCommands'
	) -> None:
		events = new_jail.update_memory_limit(1, apply=False)

		assert "memoryuse:deny=1M" in read_config(new_jail)
		assert not any(
			x.startswith("/usr/bin/rctl") for x in host_commands.command_lines
		)
		assert isinstance(
			events[-1],
			libjailnet.events.JailResourceLimitUpdate
		)

	def test_rejects_invalid_limits(
		self,
		new_jail: 'libjailnet.JailNetwork.JailNetwork'
	) -> None:
		for invalid_value in (0, -1, "lots"):
			with pytest.raises(libjailnet.errors.ValidationError):
				new_jail.update_memory_limit(invalid_value)

	def test_failed_rctl_keeps_stored_limit(
		self,
		new_jail: 'libjailnet.JailNetwork.JailNetwork',
		host_commands: 'conftest.FakeHostCommands'
	) -> None:
		host_commands.fail_on("/usr/bin/rctl")

		with pytest.raises(libjailnet.errors.ResourceLimitActionFailed):
			new_jail.update_memory_limit(64 * 1024 * 1024)

		assert new_jail.jail.memory == 64 * 1024 * 1024
		assert "memoryuse:deny=64M" in read_config(new_jail)


@pytest.fixture
def four_cores(monkeypatch: typing.Any) -> int:
	"""Let the host report four logical cores."""
	monkeypatch.setattr(libjailnet.helpers, "get_logical_cores", lambda: 4)
	return 4


def create_jail(
	host: 'libjailnet.Host.HostGenerator',
	logger: 'libjailnet.Logger.Logger',
	ctid: int,
	**kwargs: typing.Any
) -> 'libjailnet.JailNetwork.JailNetwork':
	"""Create a jail below /jails and return its synthesizer."""
	jail_network = libjailnet.JailNetwork.JailNetwork(
		ctid,
		host=host,
		logger=logger
	)
	jail_network.create(
		name=f"jail{ctid}",
		mountpoint=f"/jails/{ctid}",
		**kwargs
	)
	return jail_network


class TestCPUSet(object):

	def test_selects_least_used_cores(self) -> None:
		jails = [
			libjailnet.Jail.Jail(ctid=102, name="a", cpuset=[0, 1]),
			libjailnet.Jail.Jail(ctid=103, name="b", cpuset=[0, 2]),
			libjailnet.Jail.Jail(ctid=101, name="c", cpuset=[3])
		]
		select = libjailnet.JailNetwork.select_least_used_cores
		assert select(jails, 2, 4, ctid=101) == [1, 3]
		assert select(jails, 1, 4) == [1]
		assert select([], 3, 4) == [0, 1, 2]

	def test_create_selects_cores(
		self,
		host: 'libjailnet.Host.HostGenerator',
		logger: 'libjailnet.Logger.Logger',
		four_cores: int
	) -> None:
		create_jail(host, logger, 102, cpuset=[0, 1])
		jail_network = create_jail(host, logger, 103, cores=2)

		jail = jail_network.jail
		assert jail.cpuset == [2, 3]
		assert jail.cores == 2
		assert (
			f"\texec.created += \"cpuset -l 2,3 -j {jail.token}\";"
			in read_config(jail_network)
		)

	def test_create_rejects_cores_and_cpuset(
		self,
		host: 'libjailnet.Host.HostGenerator',
		logger: 'libjailnet.Logger.Logger',
		four_cores: int
	) -> None:
		with pytest.raises(libjailnet.errors.ValidationError):
			create_jail(host, logger, 102, cpuset=[0], cores=1)
		with pytest.raises(libjailnet.errors.ValidationError):
			create_jail(host, logger, 102, cores=5)

	def test_updates_cpuset(
		self,
		host: 'libjailnet.Host.HostGenerator',
		logger: 'libjailnet.Logger.Logger',
		new_jail: 'libjailnet.JailNetwork.JailNetwork',
		host_commands: 'conftest.FakeHostCommands',
		four_cores: int
	) -> None:
		create_jail(host, logger, 102, cpuset=[0])
		text = read_config(new_jail)

		new_jail.update_cpu(2)
		new_jail.update_cpu(3)

		jail = new_jail.jail
		assert jail.cpuset == [1, 2, 3]
		assert jail.cores == 3
		output = read_config(new_jail)
		assert "cpuset -l 1,2 -j bzmci" not in output
		assert output.count(
			"\texec.created += \"cpuset -l 1,2,3 -j bzmci\";"
		) == 1
		assert output.count("\n") == text.count("\n") + 1
		assert network_lines(new_jail) == [
			"\tip4=disable;",
			"\tip6=disable;"
		]
		assert (
			"/usr/bin/cpuset -l 1,2,3 -j bzmci"
			in host_commands.command_lines
		)

	def test_can_skip_applying_the_cpuset(
		self,
		new_jail: 'libjailnet.JailNetwork.JailNetwork',
		host_commands: 'conftest.FakeHostCommands',
		four_cores: int
	) -> None:
		events = new_jail.update_cpu(1, apply=False)

		assert "cpuset -l 0 -j bzmci" in read_config(new_jail)
		assert not any(
			x.startswith("/usr/bin/cpuset") for x in host_commands.command_lines
		)
		assert isinstance(events[-1], libjailnet.events.JailCPUSetUpdate)

	def test_rejects_invalid_core_counts(
		self,
		new_jail: 'libjailnet.JailNetwork.JailNetwork',
		four_cores: int
	) -> None:
		for invalid_value in (0, -1, 5, "many"):
			with pytest.raises(libjailnet.errors.ValidationError):
				new_jail.update_cpu(invalid_value)
		assert new_jail.jail.cpuset == []

	def test_failed_cpuset_keeps_stored_cores(
		self,
		new_jail: 'libjailnet.JailNetwork.JailNetwork',
		host_commands: 'conftest.FakeHostCommands',
		four_cores: int
	) -> None:
		host_commands.fail_on("/usr/bin/cpuset")

		with pytest.raises(libjailnet.errors.ResourceLimitActionFailed):
			new_jail.update_cpu(1)

		assert new_jail.jail.cpuset == [0]


class TestDestroy(object):

	def test_destroys_jail(
		self,
		host: 'libjailnet.Host.HostGenerator',
		new_jail: 'libjailnet.JailNetwork.JailNetwork',
		switch: 'libjailnet.Switches.Switch',
		host_commands: 'conftest.FakeHostCommands'
	) -> None:
		new_jail.add_attachment(5, dhcp=True, slaac=True)
		mac_id = new_jail.jail.attachments[0].mac_id

		new_jail.destroy()

		assert new_jail.config_file.exists is False
		assert "bzmci_5a" not in host_commands.interfaces
		assert host.database.list_attachments() == []
		assert host.objects.get(mac_id).name == "web-lan"
		with pytest.raises(libjailnet.errors.JailNotFound):
			new_jail.jail

	def test_destroy_can_delete_mac_objects(
		self,
		host: 'libjailnet.Host.HostGenerator',
		new_jail: 'libjailnet.JailNetwork.JailNetwork',
		switch: 'libjailnet.Switches.Switch',
		addresses: 'conftest.AddressObjects'
	) -> None:
		new_jail.add_attachment(5, dhcp=True, slaac=True)
		mac_id = new_jail.jail.attachments[0].mac_id

		new_jail.destroy(delete_macs=True)

		with pytest.raises(libjailnet.errors.NetworkObjectNotFound):
			host.objects.get(mac_id)
		assert host.objects.get(addresses.ipv4_gw).name == "gw4"


class TestEpairSync(object):

	def test_recreates_missing_epairs(
		self,
		host: 'libjailnet.Host.HostGenerator',
		new_jail: 'libjailnet.JailNetwork.JailNetwork',
		switch: 'libjailnet.Switches.Switch',
		host_commands: 'conftest.FakeHostCommands'
	) -> None:
		new_jail.add_attachment(5, dhcp=True, slaac=True)
		host_commands.interfaces = ["lo0", "em0", "bridge0"]

		events = list(libjailnet.JailNetwork.sync_epairs(host=host))
		assert events[-1].done is True
		assert "bzmci_5a" in host_commands.interfaces

		events = list(libjailnet.JailNetwork.sync_epairs(host=host))
		assert events[-1].skipped is True
