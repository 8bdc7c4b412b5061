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
"""
Synthesize the network configuration of jails.

A jail is in one of three network states:

- inherited: the jail shares the IPv4 and/or IPv6 stack of the host
- isolated-empty: the jail has neither inherited nor attached networks
- isolated-active: the jail owns a VNET stack with one epair per switch

Every transition recomputes the full network block of the jail.conf file
from the stored state, so applying the same state twice produces the same
file. A transition provisions host interfaces first, then writes the
configuration and commits the database last. Failures roll back what was
already changed on the host.
"""
import copy
import typing

import libjailnet.errors
import libjailnet.events
import libjailnet.helpers
import libjailnet.helpers_object
import libjailnet.Host
import libjailnet.Epair
import libjailnet.Identifier
import libjailnet.IPAddress
import libjailnet.Jail
import libjailnet.MacAddress
import libjailnet.NetworkAttachment
import libjailnet.NetworkObjects
import libjailnet.Types
import libjailnet.Config.Jail.File.JailConf
import libjailnet.Config.Jail.File.RCConf

JailConf = libjailnet.Config.Jail.File.JailConf
render_flag = JailConf.render_flag
render_assignment = JailConf.render_assignment
render_append = JailConf.render_append

MEBIBYTE = 1024 * 1024
DEVFS_RULESET = 8181


class RouteAccumulator(typing.NamedTuple):
    """Remember which default routes were already emitted."""

    ipv4_route_set: bool = False
    ipv6_route_set: bool = False


class ResolvedAttachment(typing.NamedTuple):
    """An attachment with all object references resolved to values."""

    attachment: 'libjailnet.NetworkAttachment.NetworkAttachment'
    bridge_name: str
    mac: typing.Optional['libjailnet.MacAddress.MacAddress'] = None
    ipv4: typing.Optional[str] = None
    ipv4_netmask: typing.Optional[str] = None
    ipv4_gateway: typing.Optional[str] = None
    ipv6: typing.Optional[str] = None
    ipv6_gateway: typing.Optional[str] = None


def render_attachment(
    token: str,
    resolved: ResolvedAttachment,
    routes: RouteAccumulator
) -> typing.Tuple[typing.List[str], RouteAccumulator]:
    """
    Render the exec hooks of a single attachment.

    Only the first attachment with a static address of a protocol emits
    the default route of that protocol. The returned accumulator carries
    this information to the next attachment.
    """
    attachment = resolved.attachment
    epair = libjailnet.Epair.get_epair_name(token, attachment.switch_id)
    leg_a = f"{epair}a"
    leg_b = f"{epair}b"
    lines: typing.List[str] = []

    if resolved.mac is not None:
        lines.append(render_append(
            "exec.prestart",
            f"ifconfig {leg_a} ether {resolved.mac.previous()} up"
        ))
        lines.append(render_append(
            "exec.prestart",
            f"ifconfig {leg_b} ether {resolved.mac} up"
        ))
        lines.append(render_append(
            "exec.prestart",
            libjailnet.Epair.bridge_membership_command(
                resolved.bridge_name,
                leg_a
            )
        ))

    if attachment.dhcp is True:
        lines.append(render_append("exec.start", f"dhclient {leg_b}"))
        lines.append(render_append(
            "exec.start",
            f"sysrc ifconfig_{leg_b}=\"DHCP\""
        ))
    elif resolved.ipv4 is not None:
        inet = f"inet {resolved.ipv4} netmask {resolved.ipv4_netmask}"
        lines.append(render_append("exec.start", f"ifconfig {leg_b} {inet}"))
        if routes.ipv4_route_set is False:
            lines.append(render_append(
                "exec.start",
                f"route add default {resolved.ipv4_gateway}"
            ))
            routes = routes._replace(ipv4_route_set=True)
        lines.append(render_append(
            "exec.start",
            f"sysrc ifconfig_{leg_b}=\"{inet}\""
        ))

    if attachment.slaac is True:
        lines.append(render_append(
            "exec.start",
            f"ifconfig {leg_b} inet6 accept_rtadv up"
        ))
        lines.append(render_append(
            "exec.start",
            f"sysrc ifconfig_{leg_b}_ipv6=\"inet6 accept_rtadv\""
        ))
    elif resolved.ipv6 is not None:
        lines.append(render_append(
            "exec.start",
            f"ifconfig {leg_b} inet6 {resolved.ipv6}"
        ))
        if routes.ipv6_route_set is False:
            lines.append(render_append(
                "exec.start",
                f"sysrc ipv6_defaultrouter=\"{resolved.ipv6_gateway}\""
            ))
            routes = routes._replace(ipv6_route_set=True)
        lines.append(render_append(
            "exec.start",
            f"sysrc ifconfig_{leg_b}_ipv6=\"inet6 {resolved.ipv6}\""
        ))

    return lines, routes


def render_directives(
    jail: 'libjailnet.Jail.Jail',
    resolved_attachments: typing.List[ResolvedAttachment]
) -> typing.List[str]:
    """Return the network block of a jail in its current state."""
    state = jail.state

    if state == libjailnet.Jail.STATE_INHERITED:
        lines = []
        if jail.inherit_ipv4 is True:
            lines.append(render_assignment("ip4", "inherit"))
        if jail.inherit_ipv6 is True:
            lines.append(render_assignment("ip6", "inherit"))
        return lines

    if state == libjailnet.Jail.STATE_ISOLATED_EMPTY:
        return [
            render_assignment("ip4", "disable"),
            render_assignment("ip6", "disable")
        ]

    token = jail.token
    lines = [render_flag("vnet")]
    for resolved in resolved_attachments:
        epair = libjailnet.Epair.get_epair_name(
            token,
            resolved.attachment.switch_id
        )
        lines.append(render_append("vnet.interface", f"{epair}b"))

    routes = RouteAccumulator()
    for resolved in resolved_attachments:
        attachment_lines, routes = render_attachment(token, resolved, routes)
        lines += attachment_lines
    return lines


def select_least_used_cores(
    jails: typing.Iterable['libjailnet.Jail.Jail'],
    count: int,
    logical_cores: int,
    ctid: typing.Optional[int]=None
) -> typing.List[int]:
    """
    Pick the logical cores that the fewest other jails are pinned to.

    The jail with the given ctid is not counted. Cores with the same
    usage are picked in ascending order.
    """
    usage = dict([(core, 0) for core in range(logical_cores)])
    for jail in jails:
        if jail.ctid == ctid:
            continue
        for core in jail.cpuset:
            if core in usage:
                usage[core] += 1
    ranked = sorted(usage.keys(), key=lambda core: usage[core])
    return sorted(ranked[:count])


def render_jail_config(
    jail: 'libjailnet.Jail.Jail',
    network_lines: typing.List[str]
) -> str:
    """
    Render a complete jail.conf block for a new jail.

    The network block is placed at the end of the block, where every
    later regeneration puts it as well.
    """
    token = jail.token
    lines = [
        f"{token} {{",
        f"\t$ctid = \"{token}\";",
        f"\tpath = \"{jail.mountpoint}\";",
        f"\thost.hostname = \"{jail.hostname}\";",
        render_flag("persist"),
        render_flag("exec.clean"),
        render_flag("mount.devfs"),
        render_assignment("devfs_ruleset", f"\"{DEVFS_RULESET}\""),
        render_flag("allow.sysvipc"),
        render_flag("allow.reserved_ports"),
        render_flag("allow.raw_sockets"),
        render_flag("allow.socket_af"),
        render_append("exec.start", "/bin/sh /etc/rc")
    ]

    if len(jail.cpuset) > 0:
        lines.append(render_append(
            "exec.created",
            JailConf.cpuset_command(token, jail.cpuset)
        ))

    if jail.memory > 0:
        lines.append(render_append(
            "exec.poststart",
            JailConf.memory_limit_command(token, jail.memory // MEBIBYTE)
        ))

    lines.append(render_append("exec.stop", "/bin/sh /etc/rc.shutdown"))

    if (jail.cores > 0) or (jail.memory > 0):
        lines.append(render_append("exec.poststop", f"rctl -r jail:{token}"))

    lines.append("}")
    return JailConf.insert_directives(
        "\n".join(lines) + "\n",
        network_lines,
        ctid=jail.ctid
    )


def memory_to_megabytes(memory_bytes: int) -> int:
    """Round a memory limit in bytes up to full mebibytes."""
    return (memory_bytes + MEBIBYTE - 1) // MEBIBYTE


class JailNetworkGenerator:
    """
    Network synthesizer of a single jail.

    All transitions are generators of libjailnet events. They hold the
    lock of the jail for their full duration.
    """

    def __init__(
        self,
        ctid: int,
        host: typing.Optional['libjailnet.Host.HostGenerator']=None,
        logger: typing.Optional['libjailnet.Logger.Logger']=None
    ) -> None:
        self.logger = libjailnet.helpers_object.init_logger(self, logger)
        self.host = libjailnet.helpers_object.init_host(self, host)
        self.ctid = libjailnet.Identifier.validate_ctid(
            ctid,
            logger=self.logger
        )

    @property
    def jail(self) -> 'libjailnet.Jail.Jail':
        """Return the current jail record with its attachments."""
        return self.host.database.get_jail(self.ctid)

    @property
    def config_file(self) -> 'JailConf.JailConfFile':
        """Return the jail.conf file of the jail."""
        return self.host.jail_configs.get(self.ctid)

    def _lock(self) -> typing.ContextManager[None]:
        return self.host.locks.jail(self.ctid)

    # resolution

    def _resolve_value(
        self,
        attachment: 'libjailnet.NetworkAttachment.NetworkAttachment',
        field: str
    ) -> str:
        object_id = attachment.get_reference(field)
        try:
            return self.host.objects.resolve_value(object_id)
        except (
            libjailnet.errors.NetworkObjectNotFound,
            libjailnet.errors.InvalidNetworkObject
        ) as e:
            raise libjailnet.errors.ObjectResolutionFailed(
                ctid=self.ctid,
                switch_id=attachment.switch_id,
                field=field,
                object_id=object_id,
                reason=str(e),
                logger=self.logger
            )

    def _get_switch(self, switch_id: int) -> 'libjailnet.Switches.Switch':
        try:
            return self.host.switches.get(switch_id)
        except libjailnet.errors.SwitchNotFound:
            raise libjailnet.errors.SwitchNotFound(
                switch_id=switch_id,
                ctid=self.ctid,
                logger=self.logger
            )

    def _resolution_failed(
        self,
        attachment: 'libjailnet.NetworkAttachment.NetworkAttachment',
        field: str,
        reason: str
    ) -> libjailnet.errors.ObjectResolutionFailed:
        return libjailnet.errors.ObjectResolutionFailed(
            ctid=self.ctid,
            switch_id=attachment.switch_id,
            field=field,
            object_id=attachment.get_reference(field),
            reason=reason,
            logger=self.logger
        )

    def resolve_attachment(
        self,
        attachment: 'libjailnet.NetworkAttachment.NetworkAttachment',
        mac: typing.Optional['libjailnet.MacAddress.MacAddress']=None
    ) -> ResolvedAttachment:
        """
        Resolve the bridge and all address references of an attachment.

        A MAC address that is not yet stored as object can be passed in
        with the mac argument.
        """
        switch = self._get_switch(attachment.switch_id)
        values: typing.Dict[str, typing.Any] = dict(
            attachment=attachment,
            bridge_name=switch.bridge_name
        )

        if (mac is None) and (attachment.mac_id > 0):
            mac_value = self._resolve_value(attachment, "mac")
            try:
                mac = libjailnet.MacAddress.MacAddress(
                    mac_value,
                    logger=self.logger
                )
            except libjailnet.errors.InvalidMacAddress as e:
                raise self._resolution_failed(attachment, "mac", str(e))
        values["mac"] = mac

        if attachment.ipv4_mode == "static":
            ipv4_value = self._resolve_value(attachment, "ipv4")
            try:
                ipv4, netmask = libjailnet.IPAddress.split_ipv4_and_mask(
                    ipv4_value,
                    logger=self.logger
                )
            except libjailnet.errors.InvalidIPAddress as e:
                raise self._resolution_failed(attachment, "ipv4", str(e))
            gateway = self._resolve_value(attachment, "ipv4_gw")
            if libjailnet.IPAddress.is_ipv4_address(gateway) is False:
                raise self._resolution_failed(
                    attachment,
                    "ipv4_gw",
                    f"{gateway} is not an IPv4 address"
                )
            values.update(
                ipv4=ipv4,
                ipv4_netmask=netmask,
                ipv4_gateway=gateway
            )

        if attachment.ipv6_mode == "static":
            ipv6 = self._resolve_value(attachment, "ipv6")
            if libjailnet.IPAddress.get_ip_version(ipv6) != 6:
                raise self._resolution_failed(
                    attachment,
                    "ipv6",
                    f"{ipv6} is not an IPv6 address"
                )
            gateway = self._resolve_value(attachment, "ipv6_gw")
            if libjailnet.IPAddress.is_ipv6_address(gateway) is False:
                raise self._resolution_failed(
                    attachment,
                    "ipv6_gw",
                    f"{gateway} is not an IPv6 address"
                )
            values.update(ipv6=ipv6, ipv6_gateway=gateway)

        return ResolvedAttachment(**values)

    def resolve_attachments(
        self,
        jail: 'libjailnet.Jail.Jail',
        pending_macs: typing.Optional[typing.Dict[
            int,
            'libjailnet.MacAddress.MacAddress'
        ]]=None
    ) -> typing.List[ResolvedAttachment]:
        """Resolve all attachments of a jail state in insertion order."""
        if jail.state != libjailnet.Jail.STATE_ISOLATED_ACTIVE:
            return []
        if pending_macs is None:
            pending_macs = {}
        return [
            self.resolve_attachment(
                attachment,
                mac=pending_macs.get(attachment.switch_id, None)
            )
            for attachment in jail.attachments
            if attachment.switch_id > 0
        ]

    def render_network_directives(
        self,
        jail: typing.Optional['libjailnet.Jail.Jail']=None
    ) -> typing.List[str]:
        """Return the network block of a jail without applying it."""
        if jail is None:
            jail = self.jail
        return render_directives(jail, self.resolve_attachments(jail))

    def synthesize_config(
        self,
        network_lines: typing.List[str],
        text: typing.Optional[str]=None
    ) -> str:
        """Replace the network directives of a jail.conf text."""
        if text is None:
            text = self.config_file.read()
        stripped = JailConf.strip_network_directives(text)
        return JailConf.insert_directives(
            stripped,
            network_lines,
            ctid=self.ctid,
            logger=self.logger
        )

    # persistence steps

    def _write_config(
        self,
        text: str,
        parent_event: 'libjailnet.events.JailNetEvent'
    ) -> typing.Generator['libjailnet.events.JailConfigWrite', None, None]:
        event = libjailnet.events.JailConfigWrite(
            ctid=self.ctid,
            scope=parent_event.scope
        )
        yield event.begin()
        config_file = self.config_file
        try:
            if config_file.exists is True:
                previous_text: typing.Optional[str] = config_file.read()
            else:
                previous_text = None
            config_file.write(text)
        except Exception as e:
            yield event.fail(e)
            raise

        def restore_config() -> None:
            config_file.restore(previous_text)
            self.logger.verbose(
                f"Configuration of jail {self.ctid} restored"
            )

        parent_event.add_rollback_step(restore_config)
        yield event.end()

    def _update_rc_conf(
        self,
        jail: 'libjailnet.Jail.Jail',
        parent_event: 'libjailnet.events.JailNetEvent'
    ) -> typing.Generator['libjailnet.events.JailRCConfUpdate', None, None]:
        event = libjailnet.events.JailRCConfUpdate(
            ctid=self.ctid,
            scope=parent_event.scope
        )
        yield event.begin()

        # only entering the inherited state removes interface settings
        if jail.state != libjailnet.Jail.STATE_INHERITED:
            yield event.skip()
            return
        if jail.mountpoint is None:
            yield event.skip("no mountpoint")
            return

        rc_conf = libjailnet.Config.Jail.File.RCConf.RCConf(
            jail.mountpoint,
            logger=self.logger
        )
        try:
            previous_content = rc_conf.strip_network_lines()
        except libjailnet.errors.RCConfError as e:
            yield event.fail(e)
            raise

        if previous_content is None:
            yield event.skip()
            return

        def restore_rc_conf() -> None:
            rc_conf.restore(str(previous_content))

        parent_event.add_rollback_step(restore_rc_conf)
        yield event.end()

    def _teardown_epair(
        self,
        jail: 'libjailnet.Jail.Jail',
        attachment: 'libjailnet.NetworkAttachment.NetworkAttachment',
        parent_event: 'libjailnet.events.JailNetEvent'
    ) -> typing.Generator['libjailnet.events.EpairTeardown', None, None]:
        epairs = self.host.epairs
        name = libjailnet.Epair.get_epair_name(
            jail.token,
            attachment.switch_id
        )
        event = libjailnet.events.EpairTeardown(
            epair=name,
            scope=parent_event.scope
        )
        yield event.begin()
        try:
            destroyed = epairs.delete_epair(name, ignore_missing=True)
        except libjailnet.errors.EpairProvisioningFailed as e:
            e._set_location(ctid=self.ctid, switch_id=attachment.switch_id)
            yield event.fail(e)
            raise

        if destroyed is False:
            yield event.skip("not found")
            return

        def recreate_epair() -> None:
            epairs.create_epair(
                name,
                ctid=self.ctid,
                switch_id=attachment.switch_id
            )

        parent_event.add_rollback_step(recreate_epair)
        yield event.end()

    def _provision_epairs(
        self,
        jail: 'libjailnet.Jail.Jail',
        parent_event: 'libjailnet.events.JailNetEvent'
    ) -> None:
        epairs = self.host.epairs
        created = epairs.ensure_epairs([jail])

        def destroy_created_epairs() -> None:
            for name in created:
                epairs.delete_epair(name, ignore_missing=True)

        parent_event.add_rollback_step(destroy_created_epairs)

    def _apply(
        self,
        jail: 'libjailnet.Jail.Jail',
        network_lines: typing.List[str],
        parent_event: 'libjailnet.events.JailNetEvent',
        commit: typing.Callable[
            ['libjailnet.Database.DatabaseTransaction'],
            None
        ]
    ) -> typing.Generator['libjailnet.events.JailNetEvent', None, None]:
        text = self.synthesize_config(network_lines)
        yield from self._write_config(text, parent_event)
        yield from self._update_rc_conf(jail, parent_event)
        with self.host.database.transaction() as transaction:
            commit(transaction)

    # transitions

    def inherit_network(
        self,
        ipv4: bool=False,
        ipv6: bool=False,
        event_scope: typing.Optional['libjailnet.events.Scope']=None
    ) -> typing.Generator['libjailnet.events.JailNetEvent', None, None]:
        """
        Let the jail share the network stack of the host.

        All attachments are removed and their epairs destroyed.
        """
        if (ipv4 is not True) and (ipv6 is not True):
            raise libjailnet.errors.InvalidInheritRequest(
                ctid=self.ctid,
                logger=self.logger
            )

        event = libjailnet.events.JailNetworkInherit(
            ctid=self.ctid,
            scope=event_scope
        )
        yield event.begin()
        with self._lock():
            try:
                jail = self.jail
                removed_attachments = list(jail.attachments)
                for attachment in removed_attachments:
                    yield from self._teardown_epair(jail, attachment, event)

                new_jail = copy.copy(jail)
                new_jail.inherit_ipv4 = (ipv4 is True)
                new_jail.inherit_ipv6 = (ipv6 is True)
                new_jail.attachments = []

                def commit(
                    transaction: 'libjailnet.Database.DatabaseTransaction'
                ) -> None:
                    for attachment in removed_attachments:
                        transaction.delete_attachment(attachment.id)
                    transaction.set_inherit_flags(
                        self.ctid,
                        ipv4=new_jail.inherit_ipv4,
                        ipv6=new_jail.inherit_ipv6
                    )

                yield from self._apply(
                    new_jail,
                    render_directives(new_jail, []),
                    event,
                    commit
                )
            except Exception as e:
                yield event.fail(e)
                raise
        self.logger.verbose(f"Jail {self.ctid} inherits the host network")
        yield event.end()

    def disinherit_network(
        self,
        event_scope: typing.Optional['libjailnet.events.Scope']=None
    ) -> typing.Generator['libjailnet.events.JailNetEvent', None, None]:
        """Stop sharing the network stack of the host."""
        event = libjailnet.events.JailNetworkDisinherit(
            ctid=self.ctid,
            scope=event_scope
        )
        yield event.begin()
        with self._lock():
            try:
                new_jail = self.jail
                new_jail.inherit_ipv4 = False
                new_jail.inherit_ipv6 = False
                network_lines = render_directives(
                    new_jail,
                    self.resolve_attachments(new_jail)
                )

                def commit(
                    transaction: 'libjailnet.Database.DatabaseTransaction'
                ) -> None:
                    transaction.set_inherit_flags(
                        self.ctid,
                        ipv4=False,
                        ipv6=False
                    )

                yield from self._apply(new_jail, network_lines, event, commit)
            except Exception as e:
                yield event.fail(e)
                raise
        self.logger.verbose(f"Jail {self.ctid} is isolated from the host")
        yield event.end()

    def _require_unused_objects(
        self,
        attachment: 'libjailnet.NetworkAttachment.NetworkAttachment'
    ) -> None:
        objects = self.host.objects
        for field in libjailnet.NetworkObjects.EXCLUSIVE_FIELDS:
            object_id = attachment.get_reference(field)
            if object_id == 0:
                continue
            if len(objects.get_users(object_id)) > 0:
                raise libjailnet.errors.NetworkObjectInUse(
                    object_id=object_id,
                    ctid=self.ctid,
                    switch_id=attachment.switch_id,
                    field=field,
                    logger=self.logger
                )

    def _validate_attachment(
        self,
        jail: 'libjailnet.Jail.Jail',
        attachment: 'libjailnet.NetworkAttachment.NetworkAttachment'
    ) -> None:
        if jail.inherited is True:
            raise libjailnet.errors.JailNetworkInherited(
                ctid=self.ctid,
                logger=self.logger
            )

        if jail.get_attachment_by_switch(attachment.switch_id) is not None:
            raise libjailnet.errors.DuplicateSwitchAttachment(
                ctid=self.ctid,
                switch_id=attachment.switch_id,
                logger=self.logger
            )

        if attachment.dhcp is False:
            for field in ("ipv4", "ipv4_gw"):
                if attachment.get_reference(field) > 0:
                    continue
                raise libjailnet.errors.MissingAddressPair(
                    ctid=self.ctid,
                    switch_id=attachment.switch_id,
                    field=field,
                    logger=self.logger
                )

        if attachment.slaac is False:
            for field in ("ipv6", "ipv6_gw"):
                if attachment.get_reference(field) > 0:
                    continue
                raise libjailnet.errors.MissingAddressPair(
                    ctid=self.ctid,
                    switch_id=attachment.switch_id,
                    field=field,
                    logger=self.logger
                )

        self._require_unused_objects(attachment)

    def add_attachment(
        self,
        switch_id: int,
        mac_id: typing.Optional[int]=0,
        ipv4_id: typing.Optional[int]=0,
        ipv4_gw_id: typing.Optional[int]=0,
        ipv6_id: typing.Optional[int]=0,
        ipv6_gw_id: typing.Optional[int]=0,
        dhcp: bool=False,
        slaac: bool=False,
        event_scope: typing.Optional['libjailnet.events.Scope']=None
    ) -> typing.Generator['libjailnet.events.JailNetEvent', None, None]:
        """
        Attach the jail to a switch.

        Without dhcp an IPv4 address and gateway are required, without
        slaac an IPv6 address and gateway. When no MAC object is given, a
        random address is stored as new MAC object.
        """
        attachment = libjailnet.NetworkAttachment.NetworkAttachment(
            ctid=self.ctid,
            switch_id=switch_id,
            mac_id=mac_id,
            ipv4_id=ipv4_id,
            ipv4_gw_id=ipv4_gw_id,
            ipv6_id=ipv6_id,
            ipv6_gw_id=ipv6_gw_id,
            dhcp=dhcp,
            slaac=slaac
        )
        if attachment.dhcp is True:
            attachment.ipv4_id = 0
            attachment.ipv4_gw_id = 0
        if attachment.slaac is True:
            attachment.ipv6_id = 0
            attachment.ipv6_gw_id = 0

        event = libjailnet.events.JailNetworkAttach(
            ctid=self.ctid,
            scope=event_scope
        )
        yield event.begin()
        with self._lock():
            try:
                jail = self.jail
                self._validate_attachment(jail, attachment)
                switch = self._get_switch(attachment.switch_id)

                pending_macs = {}
                generated_mac: typing.Optional[str] = None
                if attachment.mac_id == 0:
                    generated_mac = libjailnet.MacAddress.generate_random_mac()
                    pending_macs[attachment.switch_id] = (
                        libjailnet.MacAddress.MacAddress(
                            generated_mac,
                            logger=self.logger
                        )
                    )

                new_jail = copy.copy(jail)
                new_jail.attachments = jail.attachments + [attachment]
                resolved = self.resolve_attachments(new_jail, pending_macs)
                self._provision_epairs(new_jail, event)
                network_lines = render_directives(new_jail, resolved)

                def commit(
                    transaction: 'libjailnet.Database.DatabaseTransaction'
                ) -> None:
                    if generated_mac is not None:
                        mac_object = self.host.objects.create_mac_object(
                            jail.name,
                            switch.name,
                            mac_address=generated_mac,
                            transaction=transaction
                        )
                        attachment.mac_id = mac_object.id
                    transaction.insert_attachment(attachment)

                yield from self._apply(new_jail, network_lines, event, commit)
            except Exception as e:
                yield event.fail(e)
                raise
        self.logger.verbose(
            f"Jail {self.ctid} attached to switch {attachment.switch_id}"
        )
        yield event.end()

    def delete_attachment(
        self,
        attachment_id: int,
        event_scope: typing.Optional['libjailnet.events.Scope']=None
    ) -> typing.Generator['libjailnet.events.JailNetEvent', None, None]:
        """Detach the jail from a switch and destroy the epair."""
        event = libjailnet.events.JailNetworkDetach(
            ctid=self.ctid,
            scope=event_scope
        )
        yield event.begin()
        with self._lock():
            try:
                jail = self.jail
                attachment = jail.get_attachment(attachment_id)
                if attachment is None:
                    raise libjailnet.errors.AttachmentNotFound(
                        ctid=self.ctid,
                        attachment_id=attachment_id,
                        logger=self.logger
                    )

                new_jail = copy.copy(jail)
                new_jail.attachments = [
                    x for x in jail.attachments if x.id != attachment_id
                ]
                network_lines = render_directives(
                    new_jail,
                    self.resolve_attachments(new_jail)
                )
                yield from self._teardown_epair(jail, attachment, event)

                def commit(
                    transaction: 'libjailnet.Database.DatabaseTransaction'
                ) -> None:
                    transaction.delete_attachment(attachment_id)

                yield from self._apply(new_jail, network_lines, event, commit)
            except Exception as e:
                yield event.fail(e)
                raise
        self.logger.verbose(
            f"Jail {self.ctid} detached from switch {attachment.switch_id}"
        )
        yield event.end()

    def regenerate(
        self,
        event_scope: typing.Optional['libjailnet.events.Scope']=None
    ) -> typing.Generator['libjailnet.events.JailNetEvent', None, None]:
        """Rewrite the network block from the stored state."""
        event = libjailnet.events.JailNetworkRegenerate(
            ctid=self.ctid,
            scope=event_scope
        )
        yield event.begin()
        with self._lock():
            try:
                jail = self.jail
                network_lines = self.render_network_directives(jail)

                def commit(
                    transaction: 'libjailnet.Database.DatabaseTransaction'
                ) -> None:
                    pass

                yield from self._apply(jail, network_lines, event, commit)
            except Exception as e:
                yield event.fail(e)
                raise
        yield event.end()

    def update_memory_limit(
        self,
        memory_bytes: int,
        apply: bool=True,
        event_scope: typing.Optional['libjailnet.events.Scope']=None
    ) -> typing.Generator['libjailnet.events.JailNetEvent', None, None]:
        """
        Change the memory limit of the jail.

        The limit is rounded up to full mebibytes. The exec.poststart hook
        is rewritten or added while all other lines stay untouched. With
        apply enabled the limit is also set with rctl(8) right away.
        """
        try:
            memory_bytes = libjailnet.helpers.parse_int(memory_bytes)
        except TypeError as e:
            raise libjailnet.errors.ValidationError(
                message=str(e),
                logger=self.logger
            )
        if memory_bytes < 0:
            raise libjailnet.errors.ValidationError(
                message=f"Invalid memory value: {memory_bytes}",
                logger=self.logger
            )
        megabytes = memory_to_megabytes(memory_bytes)
        if megabytes < 1:
            raise libjailnet.errors.ValidationError(
                message=f"Memory must be at least 1MB, got {megabytes}MB",
                logger=self.logger
            )

        event = libjailnet.events.JailResourceLimitUpdate(
            ctid=self.ctid,
            scope=event_scope
        )
        yield event.begin()
        with self._lock():
            try:
                token = self.jail.token
                text = JailConf.set_memory_limit(
                    self.config_file.read(),
                    token,
                    megabytes,
                    ctid=self.ctid,
                    logger=self.logger
                )
                yield from self._write_config(text, event)
                with self.host.database.transaction() as transaction:
                    transaction.set_memory(self.ctid, memory_bytes)
            except Exception as e:
                yield event.fail(e)
                raise
        yield event.end()

        if apply is True:
            yield from self._run_resource_command(
                libjailnet.events.JailResourceLimitApply(
                    ctid=self.ctid,
                    scope=event.scope
                ),
                [
                    "/usr/bin/rctl",
                    "-a",
                    f"jail:{token}:memoryuse:deny={megabytes}M"
                ],
                action=f"apply the memory limit of jail {self.ctid}"
            )

    def _parse_core_count(self, cores: int) -> int:
        logical_cores = libjailnet.helpers.get_logical_cores()
        try:
            cores = libjailnet.helpers.parse_int(cores)
        except TypeError as e:
            raise libjailnet.errors.ValidationError(
                message=str(e),
                logger=self.logger
            )
        if cores < 1:
            raise libjailnet.errors.ValidationError(
                message=f"Invalid cores value: {cores} (must be >= 1)",
                logger=self.logger
            )
        if cores > logical_cores:
            raise libjailnet.errors.ValidationError(
                message=(
                    f"Requested cores ({cores}) exceed the logical cores "
                    f"available ({logical_cores})"
                ),
                logger=self.logger
            )
        return cores

    def select_cores(self, cores: int) -> typing.List[int]:
        """Return the least used logical cores for the jail."""
        return select_least_used_cores(
            self.host.database.list_jails(),
            self._parse_core_count(cores),
            libjailnet.helpers.get_logical_cores(),
            ctid=self.ctid
        )

    def update_cpu(
        self,
        cores: int,
        apply: bool=True,
        event_scope: typing.Optional['libjailnet.events.Scope']=None
    ) -> typing.Generator['libjailnet.events.JailNetEvent', None, None]:
        """
        Pin the jail to the given number of least used CPU cores.

        Cores that fewer other jails use are preferred. The exec.created
        cpuset hook is rewritten or added. With apply enabled the jail is
        moved to the new cores with cpuset(1) right away.
        """
        cores = self._parse_core_count(cores)

        event = libjailnet.events.JailCPUSetUpdate(
            ctid=self.ctid,
            scope=event_scope
        )
        yield event.begin()
        with self._lock():
            try:
                token = self.jail.token
                cpuset = self.select_cores(cores)
                text = JailConf.set_cpuset(
                    self.config_file.read(),
                    token,
                    cpuset,
                    ctid=self.ctid,
                    logger=self.logger
                )
                yield from self._write_config(text, event)
                with self.host.database.transaction() as transaction:
                    transaction.set_cpuset(self.ctid, cpuset)
            except Exception as e:
                yield event.fail(e)
                raise
        core_list = JailConf.cpuset_string(cpuset)
        self.logger.verbose(f"Jail {self.ctid} uses the cores {core_list}")
        yield event.end()

        if apply is True:
            yield from self._run_resource_command(
                libjailnet.events.JailCPUSetApply(
                    ctid=self.ctid,
                    scope=event.scope
                ),
                ["/usr/bin/cpuset", "-l", core_list, "-j", token],
                action=f"apply the CPU set of jail {self.ctid}"
            )

    def _run_resource_command(
        self,
        event: 'libjailnet.events.JailEvent',
        command: typing.List[str],
        action: str
    ) -> typing.Generator['libjailnet.events.JailNetEvent', None, None]:
        yield event.begin()
        try:
            libjailnet.helpers.exec(
                command,
                logger=self.logger,
                timeout=self.host.command_timeout
            )
        except libjailnet.errors.CommandFailure:
            yield event.fail()
            raise libjailnet.errors.ResourceLimitActionFailed(
                action=action,
                logger=self.logger
            )
        yield event.end()

    def create(
        self,
        name: str,
        mountpoint: str,
        memory: int=0,
        cpuset: typing.Optional[typing.List[int]]=None,
        inherit_ipv4: bool=False,
        inherit_ipv6: bool=False,
        cores: int=0,
        event_scope: typing.Optional['libjailnet.events.Scope']=None
    ) -> typing.Generator['libjailnet.events.JailNetEvent', None, None]:
        """
        Create the jail record and its jail.conf file.

        New jails have no attachments. They either inherit the host
        network or start in the isolated state without interfaces. CPU
        cores are either listed in cpuset, or the given number of least
        used cores is selected.
        """
        try:
            mountpoint = str(libjailnet.Types.AbsolutePath(mountpoint))
        except (TypeError, ValueError) as e:
            raise libjailnet.errors.ValidationError(
                message=f"Invalid mountpoint: {e}",
                logger=self.logger
            )
        if (cpuset is not None) and (len(cpuset) > 0) and (cores > 0):
            raise libjailnet.errors.ValidationError(
                message="Either a cpuset or a number of cores can be given",
                logger=self.logger
            )
        if cores > 0:
            self._parse_core_count(cores)

        event = libjailnet.events.JailCreate(
            ctid=self.ctid,
            scope=event_scope
        )
        yield event.begin()
        with self._lock():
            try:
                if self.config_file.exists is True:
                    raise libjailnet.errors.JailAlreadyExists(
                        ctid=self.ctid,
                        logger=self.logger
                    )
                if cores > 0:
                    cpuset = self.select_cores(cores)
                elif cpuset is None:
                    cpuset = []
                jail = libjailnet.Jail.Jail(
                    ctid=self.ctid,
                    name=name,
                    mountpoint=mountpoint,
                    inherit_ipv4=inherit_ipv4,
                    inherit_ipv6=inherit_ipv6,
                    memory=memory,
                    cores=len(cpuset),
                    cpuset=cpuset,
                    identifier_length=self.host.identifier_length
                )
                text = render_jail_config(jail, render_directives(jail, []))
                yield from self._write_config(text, event)
                yield from self._update_rc_conf(jail, event)
                with self.host.database.transaction() as transaction:
                    transaction.create_jail(jail)
            except Exception as e:
                yield event.fail(e)
                raise
        self.logger.verbose(f"Jail {self.ctid} ({name}) created")
        yield event.end()

    def destroy(
        self,
        delete_macs: bool=False,
        event_scope: typing.Optional['libjailnet.events.Scope']=None
    ) -> typing.Generator['libjailnet.events.JailNetEvent', None, None]:
        """
        Destroy all epairs, the jail.conf file and the jail record.

        With delete_macs the MAC objects of the attachments are deleted
        as well, unless another jail still references them.
        """
        event = libjailnet.events.JailDestroy(
            ctid=self.ctid,
            scope=event_scope
        )
        yield event.begin()
        with self._lock():
            try:
                jail = self.jail
                for attachment in jail.attachments:
                    yield from self._teardown_epair(jail, attachment, event)
                config_file = self.config_file
                if config_file.exists is True:
                    previous_text = config_file.read()

                    def restore_config() -> None:
                        config_file.restore(previous_text)

                    config_file.delete()
                    event.add_rollback_step(restore_config)
                mac_ids = [
                    x.mac_id for x in jail.attachments if x.mac_id > 0
                ]
                with self.host.database.transaction() as transaction:
                    transaction.delete_jail(self.ctid)
                    if delete_macs is True:
                        for mac_id in mac_ids:
                            transaction.delete_unused_object(mac_id)
            except Exception as e:
                yield event.fail(e)
                raise
        self.logger.verbose(f"Jail {self.ctid} destroyed")
        yield event.end()


class JailNetwork(JailNetworkGenerator):
    """Synchronous wrapper of JailNetworkGenerator."""

    def inherit_network(  # noqa: T484
        self,
        *args,
        **kwargs
    ) -> typing.List['libjailnet.events.JailNetEvent']:
        """Let the jail share the network stack of the host."""
        return list(JailNetworkGenerator.inherit_network(
            self,
            *args,
            **kwargs
        ))

    def disinherit_network(  # noqa: T484
        self,
        *args,
        **kwargs
    ) -> typing.List['libjailnet.events.JailNetEvent']:
        """Stop sharing the network stack of the host."""
        return list(JailNetworkGenerator.disinherit_network(
            self,
            *args,
            **kwargs
        ))

    def add_attachment(  # noqa: T484
        self,
        *args,
        **kwargs
    ) -> typing.List['libjailnet.events.JailNetEvent']:
        """Attach the jail to a switch."""
        return list(JailNetworkGenerator.add_attachment(self, *args, **kwargs))

    def delete_attachment(  # noqa: T484
        self,
        *args,
        **kwargs
    ) -> typing.List['libjailnet.events.JailNetEvent']:
        """Detach the jail from a switch."""
        return list(JailNetworkGenerator.delete_attachment(
            self,
            *args,
            **kwargs
        ))

    def regenerate(  # noqa: T484
        self,
        *args,
        **kwargs
    ) -> typing.List['libjailnet.events.JailNetEvent']:
        """Rewrite the network block from the stored state."""
        return list(JailNetworkGenerator.regenerate(self, *args, **kwargs))

    def update_memory_limit(  # noqa: T484
        self,
        *args,
        **kwargs
    ) -> typing.List['libjailnet.events.JailNetEvent']:
        """Change the memory limit of the jail."""
        return list(JailNetworkGenerator.update_memory_limit(
            self,
            *args,
            **kwargs
        ))

    def update_cpu(  # noqa: T484
        self,
        *args,
        **kwargs
    ) -> typing.List['libjailnet.events.JailNetEvent']:
        """Pin the jail to the least used CPU cores."""
        return list(JailNetworkGenerator.update_cpu(self, *args, **kwargs))

    def create(  # noqa: T484
        self,
        *args,
        **kwargs
    ) -> typing.List['libjailnet.events.JailNetEvent']:
        """Create the jail record and its jail.conf file."""
        return list(JailNetworkGenerator.create(self, *args, **kwargs))

    def destroy(  # noqa: T484
        self,
        *args,
        **kwargs
    ) -> typing.List['libjailnet.events.JailNetEvent']:
        """Destroy all epairs, the jail.conf file and the jail record."""
        return list(JailNetworkGenerator.destroy(self, *args, **kwargs))


def sync_epairs(
    host: typing.Optional['libjailnet.Host.HostGenerator']=None,
    logger: typing.Optional['libjailnet.Logger.Logger']=None,
    event_scope: typing.Optional['libjailnet.events.Scope']=None
) -> typing.Generator['libjailnet.events.EpairSync', None, None]:
    """
    Create missing epairs of all jails.

    Used when the host boots and interfaces of stopped jails are gone.
    The global lock is held for the full run, each jail is locked while
    its epairs are created.
    """
    if host is None:
        host = libjailnet.Host.HostGenerator(logger=logger)
    if logger is None:
        logger = host.logger

    event = libjailnet.events.EpairSync(scope=event_scope)
    yield event.begin()
    created: typing.List[str] = []
    try:
        with host.locks.global_lock:
            epairs = host.epairs
            for jail in host.database.list_jails():
                with host.locks.jail(jail.ctid):
                    created += epairs.ensure_epairs([jail])
    except Exception as e:
        yield event.fail(e)
        raise

    if len(created) == 0:
        yield event.skip("all epairs exist")
        return
    logger.verbose(f"Created epairs: {', '.join(created)}")
    yield event.end()
