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
"""Manage the switches jails are attached to with the CLI."""
import sys
import typing

import click

import libjailnet.errors

from . import get_host
from .shared.output import print_records, supported_output_formats

__rootcmd__ = True

columns = ["id", "name", "bridge"]


@click.group(name="switch", help="Manage switches.")
def cli() -> None:
    """Manage the bridges jails can be attached to."""
    pass


@cli.command(name="add", help="Register a bridge as switch.")
@click.pass_context
@click.option("--id", "switch_id", default=None, type=int,
              help="Use a fixed switch id.")
@click.argument("name")
@click.argument("bridge")
def add(
    ctx: click.Context,
    switch_id: typing.Optional[int],
    name: str,
    bridge: str
) -> None:
    """Register a switch."""
    try:
        switch = get_host(ctx).switches.create(
            name=name,
            bridge_name=bridge,
            switch_id=switch_id
        )
    except libjailnet.errors.JailNetException:
        sys.exit(1)
    print(switch.id)


@cli.command(name="list", help="List all switches.")
@click.pass_context
@click.option("--output-format", "-f", "output_format", default="table",
              type=click.Choice(supported_output_formats))
@click.option("--header/--no-header", "-H", "show_header", default=True)
def list_switches(
    ctx: click.Context,
    output_format: str,
    show_header: bool
) -> None:
    """Print all registered switches."""
    try:
        switches = get_host(ctx).switches.list()
    except libjailnet.errors.JailNetException:
        sys.exit(1)
    data = [[str(x.id), x.name, x.bridge_name] for x in switches]
    print_records(
        data,
        columns,
        output_format=output_format,
        show_header=show_header
    )


@cli.command(name="remove", help="Remove a switch without attachments.")
@click.pass_context
@click.argument("switch_id", type=int)
def remove(ctx: click.Context, switch_id: int) -> None:
    """Remove a switch."""
    try:
        get_host(ctx).switches.delete(switch_id)
    except libjailnet.errors.JailNetException:
        sys.exit(1)
