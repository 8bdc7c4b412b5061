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
"""Manage network objects with the CLI."""
import sys
import typing

import click

import libjailnet.errors
import libjailnet.NetworkObjects

from . import get_host
from .shared.output import print_records, supported_output_formats

__rootcmd__ = True

columns = ["id", "name", "type", "values"]


@click.group(name="object", help="Manage network objects.")
def cli() -> None:
    """Manage named MAC addresses, IP hosts and networks."""
    pass


@cli.command(name="add", help="Create a network object.")
@click.pass_context
@click.argument("name")
@click.argument(
    "object_type",
    type=click.Choice(libjailnet.NetworkObjects.OBJECT_TYPES)
)
@click.argument("values", nargs=-1, required=True)
def add(
    ctx: click.Context,
    name: str,
    object_type: str,
    values: typing.Tuple[str, ...]
) -> None:
    """Create a network object and print its id."""
    try:
        network_object = get_host(ctx).objects.create_object(
            name,
            object_type,
            list(values)
        )
    except libjailnet.errors.JailNetException:
        sys.exit(1)
    print(network_object.id)


@cli.command(name="list", help="List all network objects.")
@click.pass_context
@click.option("--output-format", "-f", "output_format", default="table",
              type=click.Choice(supported_output_formats))
@click.option("--header/--no-header", "-H", "show_header", default=True)
def list_objects(
    ctx: click.Context,
    output_format: str,
    show_header: bool
) -> None:
    """Print all network objects."""
    try:
        network_objects = get_host(ctx).objects.list()
    except libjailnet.errors.JailNetException:
        sys.exit(1)
    data = [
        [str(x.id), x.name, x.type, ",".join(x.values)]
        for x in network_objects
    ]
    print_records(
        data,
        columns,
        output_format=output_format,
        show_header=show_header
    )


@cli.command(name="remove", help="Remove an unused network object.")
@click.pass_context
@click.argument("object_id", type=int)
def remove(ctx: click.Context, object_id: int) -> None:
    """Remove a network object."""
    try:
        get_host(ctx).objects.delete_object(object_id)
    except libjailnet.errors.JailNetException:
        sys.exit(1)
