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
"""Unit tests for network objects and switches."""
import pytest

import libjailnet.errors
import libjailnet.Jail
import libjailnet.NetworkAttachment
import libjailnet.NetworkObjects


class TestNetworkObjectValidation(object):

	def test_accepts_valid_objects(self) -> None:
		validate = libjailnet.NetworkObjects.validate
		validate("Host", ["10.0.0.5"])
		validate("Host", ["2001:db8::5", "2001:db8::6"])
		validate("Network", ["10.0.0.0/24"])
		validate("Mac", ["02:00:00:00:00:01"])

	def test_rejects_invalid_objects(
		self,
		logger: 'libjailnet.Logger.Logger'
	) -> None:
		invalid_objects = [
			("Router", ["10.0.0.1"]),
			("Host", []),
			("Host", [""]),
			("Host", ["10.0.0.0/24"]),
			("Host", ["10.0.0.5", "2001:db8::5"]),
			("Network", ["10.0.0.1"]),
			("Mac", ["02:00:00"])
		]
		for object_type, values in invalid_objects:
			with pytest.raises(libjailnet.errors.InvalidNetworkObject):
				libjailnet.NetworkObjects.validate(
					object_type,
					values,
					logger=logger
				)


class TestNetworkObjectResolver(object):

	def test_creates_and_resolves_objects(
		self,
		host: 'libjailnet.Host.HostGenerator'
	) -> None:
		network_object = host.objects.create_object(
			"web-v4",
			"Network",
			["10.0.0.5/24"]
		)
		assert network_object.id == 1
		assert host.objects.get(1).values == ["10.0.0.5/24"]
		assert host.objects.resolve_value(1) == "10.0.0.5/24"

	def test_names_are_unique(
		self,
		host: 'libjailnet.Host.HostGenerator'
	) -> None:
		host.objects.create_object("gw", "Host", ["10.0.0.1"])
		with pytest.raises(libjailnet.errors.InvalidNetworkObject):
			host.objects.create_object("gw", "Host", ["10.0.0.2"])

	def test_resolving_requires_a_single_value(
		self,
		host: 'libjailnet.Host.HostGenerator'
	) -> None:
		network_object = host.objects.create_object(
			"pool",
			"Host",
			["10.0.0.5", "10.0.0.6"]
		)
		with pytest.raises(libjailnet.errors.InvalidNetworkObject):
			host.objects.resolve_value(network_object.id)

		with pytest.raises(libjailnet.errors.NetworkObjectNotFound):
			host.objects.resolve_value(404)

	def test_mac_object_names_are_disambiguated(
		self,
		host: 'libjailnet.Host.HostGenerator'
	) -> None:
		first = host.objects.create_mac_object("web", "lan")
		second = host.objects.create_mac_object("web", "lan")
		third = host.objects.create_mac_object(
			"web",
			"lan",
			mac_address="02:00:00:00:00:01"
		)

		assert first.name == "web-lan"
		assert second.name == "web-lan-1"
		assert third.name == "web-lan-2"
		assert third.values == ["02:00:00:00:00:01"]
		assert first.type == "Mac"

	def test_objects_in_use_cannot_be_deleted(
		self,
		host: 'libjailnet.Host.HostGenerator'
	) -> None:
		network_object = host.objects.create_object(
			"web-v4",
			"Network",
			["10.0.0.5/24"]
		)
		with host.database.transaction() as transaction:
			transaction.create_jail(
				libjailnet.Jail.Jail(ctid=101, name="web")
			)
			transaction.insert_attachment(
				libjailnet.NetworkAttachment.NetworkAttachment(
					ctid=101,
					switch_id=5,
					ipv4_id=network_object.id,
					ipv4_gw_id=network_object.id,
					slaac=True
				)
			)

		assert host.objects.is_in_use(network_object.id) is True
		with pytest.raises(libjailnet.errors.NetworkObjectInUse):
			host.objects.delete_object(network_object.id)

	def test_unused_objects_can_be_deleted(
		self,
		host: 'libjailnet.Host.HostGenerator'
	) -> None:
		network_object = host.objects.create_object(
			"gw",
			"Host",
			["10.0.0.1"]
		)
		host.objects.delete_object(network_object.id)
		assert host.objects.list() == []


class TestSwitchRegistry(object):

	def test_registers_switches(
		self,
		host: 'libjailnet.Host.HostGenerator',
		switch: 'libjailnet.Switches.Switch'
	) -> None:
		assert switch.id == 5
		assert host.switches.get_bridge_name(5) == "bridge0"
		assert [x.name for x in host.switches.list()] == ["lan"]

		automatic_switch = host.switches.create("dmz", "bridge1")
		assert automatic_switch.id == 6

	def test_unknown_switch_is_not_found(
		self,
		host: 'libjailnet.Host.HostGenerator'
	) -> None:
		with pytest.raises(libjailnet.errors.SwitchNotFound):
			host.switches.get(5)

	def test_switches_can_be_removed(
		self,
		host: 'libjailnet.Host.HostGenerator',
		switch: 'libjailnet.Switches.Switch'
	) -> None:
		host.switches.delete(switch.id)
		assert host.switches.list() == []
		with pytest.raises(libjailnet.errors.SwitchNotFound):
			host.switches.delete(switch.id)

	def test_rejects_unsafe_bridge_names(
		self,
		host: 'libjailnet.Host.HostGenerator'
	) -> None:
		for bridge_name in ("bridge0; reboot", "", "0bridge", "b" * 16):
			with pytest.raises(libjailnet.errors.ValidationError):
				host.switches.create("lan", bridge_name)
		assert host.switches.list() == []
