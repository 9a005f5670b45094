import click

from yamspy.yams import YAMS


@click.group()
def cli() -> None:
    pass


@cli.command()
@click.option(
    "--config",
    required=True,
    type=str,
    help="Specify the path to the config file to be used.",
)
@click.option(
    "--cluster",
    type=str,
    default="",
    help="File path for particle cluster specifications. Overrides the provided path in the config.",
)
@click.option(
    "--output",
    type=str,
    default=None,
    help="Result file (json, yaml, pkl, bz2 or mat). Overrides the output of the config.",
)
@click.option(
    "--second-harmonic/--no-second-harmonic",
    default=None,
    help="Solve the second harmonic problem driven by the fundamental solution.",
)
def compute(config: str, cluster: str, output: str | None, second_harmonic: bool | None) -> None:
    handler = YAMS(config, path_cluster=cluster)
    handler.run(second_harmonic=second_harmonic)
    path = handler.export(output)
    click.echo(f"Result written to {path}")
