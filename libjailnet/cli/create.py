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
"""Create jails with the CLI."""
import typing

import click

from . import get_jail_network, run_events

__rootcmd__ = True


def _parse_cpuset(value: typing.Optional[str]) -> typing.List[int]:
    if (value is None) or (value == ""):
        return []
    try:
        return [int(x) for x in value.split(",")]
    except ValueError:
        raise click.BadParameter(f"invalid core list: {value}")


@click.command(name="create", help="Create a jail and its configuration.")
@click.pass_context
@click.option("--memory", "-m", default=0, type=int,
              help="Memory limit in bytes.")
@click.option("--cpuset", "-C", default=None,
              help="Comma separated list of CPU cores.")
@click.option("--cores", default=0, type=int,
              help="Number of least used CPU cores to pin the jail to.")
@click.option("--inherit-ipv4", is_flag=True, default=False,
              help="Share the IPv4 stack of the host.")
@click.option("--inherit-ipv6", is_flag=True, default=False,
              help="Share the IPv6 stack of the host.")
@click.argument("ctid", type=int)
@click.argument("name")
@click.argument("mountpoint")
def cli(
    ctx: click.Context,
    memory: int,
    cpuset: typing.Optional[str],
    cores: int,
    inherit_ipv4: bool,
    inherit_ipv6: bool,
    ctid: int,
    name: str,
    mountpoint: str
) -> None:
    """Create a jail."""
    core_list = _parse_cpuset(cpuset)
    jail_network = get_jail_network(ctx, ctid)
    run_events(jail_network.create(
        name,
        mountpoint,
        memory=memory,
        cpuset=core_list,
        inherit_ipv4=inherit_ipv4,
        inherit_ipv6=inherit_ipv6,
        cores=cores
    ))
