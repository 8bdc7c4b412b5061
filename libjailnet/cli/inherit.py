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
"""Let jails share the host network stack with the CLI."""
import click

from . import get_jail_network, run_events

__rootcmd__ = True


@click.command(
    name="inherit",
    help="Share the IPv4 and/or IPv6 stack of the host with a jail."
)
@click.pass_context
@click.option("--ipv4/--no-ipv4", "-4", default=False,
              help="Inherit the IPv4 stack.")
@click.option("--ipv6/--no-ipv6", "-6", default=False,
              help="Inherit the IPv6 stack.")
@click.argument("ctid", type=int)
def cli(
    ctx: click.Context,
    ipv4: bool,
    ipv6: bool,
    ctid: int
) -> None:
    """
    Switch a jail to the inherited network mode.

    All switch attachments of the jail are removed.
    """
    jail_network = get_jail_network(ctx, ctid)
    run_events(jail_network.inherit_network(ipv4=ipv4, ipv6=ipv6))
