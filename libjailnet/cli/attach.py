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
"""Attach jails to switches with the CLI."""
import click

from . import get_jail_network, run_events

__rootcmd__ = True


@click.command(name="attach", help="Attach a jail to a switch.")
@click.pass_context
@click.option("--mac", "mac_id", default=0, type=int,
              help="Network object with the MAC address.")
@click.option("--ipv4", "ipv4_id", default=0, type=int,
              help="Network object with the IPv4 address.")
@click.option("--ipv4-gw", "ipv4_gw_id", default=0, type=int,
              help="Network object with the IPv4 gateway.")
@click.option("--ipv6", "ipv6_id", default=0, type=int,
              help="Network object with the IPv6 address.")
@click.option("--ipv6-gw", "ipv6_gw_id", default=0, type=int,
              help="Network object with the IPv6 gateway.")
@click.option("--dhcp", is_flag=True, default=False,
              help="Configure IPv4 with DHCP.")
@click.option("--slaac", is_flag=True, default=False,
              help="Configure IPv6 with SLAAC.")
@click.argument("ctid", type=int)
@click.argument("switch_id", type=int)
def cli(
    ctx: click.Context,
    mac_id: int,
    ipv4_id: int,
    ipv4_gw_id: int,
    ipv6_id: int,
    ipv6_gw_id: int,
    dhcp: bool,
    slaac: bool,
    ctid: int,
    switch_id: int
) -> None:
    """Attach a jail to a switch."""
    jail_network = get_jail_network(ctx, ctid)
    run_events(jail_network.add_attachment(
        switch_id,
        mac_id=mac_id,
        ipv4_id=ipv4_id,
        ipv4_gw_id=ipv4_gw_id,
        ipv6_id=ipv6_id,
        ipv6_gw_id=ipv6_gw_id,
        dhcp=dhcp,
        slaac=slaac
    ))
