import logging
from pathlib import Path

from yamspy.config import Config
from yamspy.export import Export
from yamspy.geometry import Geometry
from yamspy.initial_field import InitialField
from yamspy.result import Result
from yamspy.solver import Solver


class YAMS:
    """Runs a case file: configuration, assembly, solve and export.

    Args:
        path_config (str): JSON or YAML case file.
        path_cluster (str, optional): Geometry file, overrides the one of the case file.
    """

    path_config: str
    path_cluster: str
    config: Config

    def __init__(self, path_config: str, path_cluster: str = ""):
        self.path_config = path_config
        self.path_cluster = path_cluster
        self.config = Config(path_config=self.path_config, path_cluster=self.path_cluster)
        self.log = logging.getLogger(self.__class__.__module__)

        self.geometry: Geometry = self.config.geometry()
        self.excitation: InitialField = self.config.excitation()
        if not self.geometry.no_overlap():
            self.log.warning("Some spheres overlap, the results are not physical")
        self.solver = Solver(
            self.geometry,
            self.excitation,
            method=self.config.method,
            n_max=self.config.n_max,
            parameters=self.config.parameters,
            context=self.config.context(),
            block_size=self.config.block_size(),
        )
        self.result: Result | None = None

    def run(self, second_harmonic: bool | None = None) -> Result:
        """Solves the case; with ``second_harmonic`` the fundamental result drives a second run."""
        second_harmonic = self.config.second_harmonic if second_harmonic is None else second_harmonic
        self.result = self.solver.run()
        self.log.info("Fundamental frequency solved")
        if second_harmonic:
            self.result = self.solver.second_harmonic(self.result).run()
            self.log.info("Second harmonic solved")
        return self.result

    def export(self, filename: str | Path | None = None) -> Path:
        if self.result is None:
            raise RuntimeError("Run the case before exporting its result")
        filename = Path(self.config.output_filename if filename is None else filename)
        filename.parent.mkdir(parents=True, exist_ok=True)
        Export.from_result(self.result).save(filename)
        self.log.info(f"Result written to {filename}")
        return filename
