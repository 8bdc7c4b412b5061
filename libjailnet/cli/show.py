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
"""Show the network configuration of a jail with the CLI."""
import sys
import typing

import click

import libjailnet.errors

from . import get_jail_network
from .shared.output import print_records, supported_output_formats

attachment_columns = [
    "id", "switch", "mac", "ipv4", "ipv4_gw", "ipv6", "ipv6_gw"
]


def _format_reference(object_id: int) -> str:
    return str(object_id) if (object_id > 0) else "-"


@click.command(
    name="show",
    help="Show the attachments or the network directives of a jail."
)
@click.pass_context
@click.option("--directives", "-D", is_flag=True, default=False,
              help="Print the synthesized jail.conf network block.")
@click.option("--output-format", "-f", "output_format", default="table",
              type=click.Choice(supported_output_formats))
@click.argument("ctid", type=int)
def cli(
    ctx: click.Context,
    directives: bool,
    output_format: str,
    ctid: int
) -> None:
    """Print the network state of a jail."""
    jail_network = get_jail_network(ctx, ctid)

    try:
        jail = jail_network.jail
        if directives is True:
            lines = jail_network.render_network_directives(jail)
    except libjailnet.errors.JailNetException:
        sys.exit(1)

    if directives is True:
        for line in lines:
            print(line)
        return

    data: typing.List[typing.List[str]] = []
    for attachment in jail.attachments:
        if attachment.dhcp is True:
            ipv4 = "DHCP"
        else:
            ipv4 = _format_reference(attachment.ipv4_id)
        if attachment.slaac is True:
            ipv6 = "SLAAC"
        else:
            ipv6 = _format_reference(attachment.ipv6_id)
        data.append([
            str(attachment.id),
            str(attachment.switch_id),
            _format_reference(attachment.mac_id),
            ipv4,
            _format_reference(attachment.ipv4_gw_id),
            ipv6,
            _format_reference(attachment.ipv6_gw_id)
        ])

    print_records(data, attachment_columns, output_format=output_format)
