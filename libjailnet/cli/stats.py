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
"""Print the resource usage of jails with the CLI."""
import sys

import click

import libjailnet.errors
import libjailnet.JailStats

from . import get_host
from .shared.output import print_records, supported_output_formats

columns = ["ctid", "name", "state", "cpu", "memory"]


@click.command(name="stats", help="Show CPU and memory usage of jails.")
@click.pass_context
@click.option("--output-format", "-f", "output_format", default="table",
              type=click.Choice(supported_output_formats))
@click.option("--header/--no-header", "-H", "show_header", default=True)
@click.argument("ctids", nargs=-1, type=int)
def cli(
    ctx: click.Context,
    output_format: str,
    show_header: bool,
    ctids: tuple
) -> None:
    """Print the current usage of all or the selected jails."""
    logger = ctx.parent.logger
    host = get_host(ctx)
    stats = libjailnet.JailStats.JailStats(host=host, logger=logger)

    try:
        jails = host.database.list_jails()
        if len(ctids) > 0:
            jails = [x for x in jails if x.ctid in ctids]
        processes = stats.query_processes()
        usages = [stats.get_usage(x, processes=processes) for x in jails]
    except libjailnet.errors.JailNetException:
        sys.exit(1)

    data = []
    for jail, usage in zip(jails, usages):
        data.append([
            str(jail.ctid),
            jail.name,
            usage.state,
            f"{usage.cpu_percent}%",
            str(usage.memory_bytes)
        ])

    print_records(
        data,
        columns,
        output_format=output_format,
        show_header=show_header
    )
