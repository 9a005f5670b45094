"""Case file loading and validation.

A case file (JSON or YAML) describes the scatterers, the incident wave, the
solver and the output, for example::

    particles:
      n_max: 4
      material: {epsilon: [2.25, 0.0]}
      geometry:
        file: cluster.csv      # columns x, y, z, r[, eps_re, eps_im, mu_re, mu_im]
        delimiter: whitespace
        scale: 1.0
    initial_field:
      wavelength: 1.0
      polarization: TE
    medium: {epsilon: [1.0, 0.0]}
    solver:
      method: indirect
      type: gmres
      tolerance: 1.0e-8
    numerics:
      grid: [1, 1]
      block_size: [64, 64]
    output: results.json

Scatterers may also be listed inline under ``particles.geometry.spheres``.
"""

import json
import logging
from pathlib import Path
from typing import Literal

import numpy as np
import pandas as pd
import yaml
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)
from typing_extensions import Self

from yamspy.electromagnetic import ElectroMagnetic
from yamspy.exceptions import ConfigurationError
from yamspy.geometry import Geometry
from yamspy.initial_field import InitialField
from yamspy.linalg.env import block_size_from_env, grid_shape_from_env
from yamspy.linalg.grid import Context
from yamspy.particles import Scatterer


def _complex(value) -> complex:
    if isinstance(value, (list, tuple)):
        if len(value) != 2:
            raise ValueError(f"Complex values are given as [real, imag], got {value}")
        return complex(value[0], value[1])
    return complex(value)


class MaterialModel(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    epsilon: complex = Field(default=1.0)
    mu: complex = Field(default=1.0)

    @field_validator("epsilon", "mu", mode="before")
    @classmethod
    def parse_complex(cls, value):
        return _complex(value)

    def elmag(self) -> ElectroMagnetic:
        return ElectroMagnetic(self.epsilon, self.mu)


class SphereModel(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    position: list[float] = Field(min_length=3, max_length=3)
    radius: float = Field(gt=0)
    material: MaterialModel | None = Field(default=None)
    second_harmonic_coupling: complex = Field(default=1.0)

    @field_validator("second_harmonic_coupling", mode="before")
    @classmethod
    def parse_complex(cls, value):
        return _complex(value)


class GeometryModel(BaseModel):
    file: str | None = Field(default=None)
    delimiter: str = Field(default=",")
    scale: float = Field(default=1.0, gt=0)
    spheres: list[SphereModel] = Field(default=[])

    @model_validator(mode="after")
    def one_source(self) -> Self:
        if self.file is None and len(self.spheres) == 0:
            raise ValueError("Provide either a geometry file or a list of spheres")
        if self.file is not None and len(self.spheres) > 0:
            raise ValueError("Provide either a geometry file or a list of spheres, not both")
        return self


class ParticlesModel(BaseModel):
    n_max: int = Field(default=4, ge=1)
    material: MaterialModel = Field(default_factory=MaterialModel)
    geometry: GeometryModel


class InitialFieldModel(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    wavelength: float = Field(gt=0)
    amplitude: float = Field(default=1.0)
    polar_angle: float = Field(default=0.0)
    azimuthal_angle: float = Field(default=0.0)
    polarization: Literal["TE", "TM", "te", "tm"] | tuple[complex, complex] = Field(
        default="TE"
    )

    @field_validator("polarization", mode="before")
    @classmethod
    def parse_polarization(cls, value):
        # explicit (E_theta, E_phi), each component a number or [real, imag]
        if isinstance(value, (list, tuple)):
            if len(value) != 2:
                raise ValueError(f"Polarization is given as [E_theta, E_phi], got {value}")
            return tuple(_complex(component) for component in value)
        return value


class SolverModel(BaseModel):
    method: Literal["direct", "indirect"] = Field(default="direct")
    type: str = Field(default="")
    tolerance: float = Field(default=1e-8, gt=0)
    max_iter: int = Field(default=1000, ge=1)
    restart: int = Field(default=100, ge=1)

    def parameters(self) -> dict:
        return self.model_dump(exclude={"method"})


class NumericsModel(BaseModel):
    grid: tuple[int, int] = Field(default=(1, 1))
    block_size: tuple[int, int] = Field(default=(64, 64))


class OutputModel(BaseModel):
    folder: str = Field(default=".")
    filename: str | None = Field(default=None)
    extension: str = Field(default="json")


class CaseModel(BaseModel):
    particles: ParticlesModel
    initial_field: InitialFieldModel
    medium: MaterialModel = Field(default_factory=MaterialModel)
    solver: SolverModel = Field(default_factory=SolverModel)
    numerics: NumericsModel = Field(default_factory=NumericsModel)
    output: OutputModel | str = Field(default_factory=OutputModel)
    second_harmonic: bool = Field(default=False)


class Config:
    """A validated case file.

    Args:
        path_config (str | Path): JSON or YAML case file.
        path_cluster (str, optional): Geometry file, overrides the one of the case file.

    Raises:
        ConfigurationError: If the file cannot be read or does not validate.
    """

    def __init__(self, path_config: str | Path, path_cluster: str = ""):
        self.log = logging.getLogger(self.__class__.__module__)
        _path_config = Path(path_config)
        self.file_type = _path_config.suffix
        if not _path_config.is_file():
            raise ConfigurationError(f"Could not read config file {path_config}")
        match self.file_type:
            case ".json":
                with open(_path_config) as data:
                    raw = json.load(data)
            case ".yaml" | ".yml":
                with open(_path_config) as data:
                    raw = yaml.safe_load(data)
            case _:
                raise ConfigurationError(
                    "The provided config file needs to be a json or yaml file!"
                )
        if raw is None:
            raise ConfigurationError(f"Config file {path_config} is empty")
        try:
            self.case = CaseModel.model_validate(raw)
        except ValidationError as error:
            raise ConfigurationError(f"Invalid config file {path_config}:\n{error}") from error

        self.path_config = _path_config
        geometry = self.case.particles.geometry
        cluster = path_cluster or geometry.file or ""
        if cluster and not Path(cluster).is_absolute():
            cluster = str(_path_config.parent / cluster)
        self.path_cluster = cluster

        self.__read()
        self.__folder()

    def __read(self):
        particles = self.case.particles
        geometry = particles.geometry
        default = particles.material

        if self.path_cluster:
            delimiter = r"\s+" if geometry.delimiter == "whitespace" else geometry.delimiter
            spheres = pd.read_csv(self.path_cluster, header=None, sep=delimiter)
            if spheres.shape[1] < 4:
                raise ConfigurationError(
                    "The particle geometry file needs at least 4 columns (x, y, z, r)"
                )
            if spheres.shape[1] > 8:
                self.log.warning(
                    "More than 8 columns have been provided. Everything after the 8th will be ignored!"
                )
            table = spheres.to_numpy(dtype=float)
            self.scatterers = []
            for row in table:
                epsilon = (
                    complex(row[4], row[5] if len(row) > 5 else 0.0)
                    if len(row) > 4
                    else default.epsilon
                )
                mu = complex(row[6], row[7] if len(row) > 7 else 0.0) if len(row) > 6 else default.mu
                self.scatterers.append(
                    Scatterer(
                        row[:3] * geometry.scale,
                        ElectroMagnetic(epsilon, mu),
                        row[3] * geometry.scale,
                        particles.n_max,
                    )
                )
            self.log.info(f"Read {len(self.scatterers)} spheres from {self.path_cluster}")
        else:
            self.scatterers = [
                Scatterer(
                    np.array(sphere.position) * geometry.scale,
                    (sphere.material or default).elmag(),
                    sphere.radius * geometry.scale,
                    particles.n_max,
                    sphere.second_harmonic_coupling,
                )
                for sphere in geometry.spheres
            ]
        if geometry.scale != 1:
            self.log.info(f"Particles have been scaled by {geometry.scale}")

    def __folder(self):
        output = self.case.output
        if isinstance(output, str):
            output = OutputModel(filename=output)
        filename = output.filename
        if filename is None:
            stem = Path(self.path_cluster).stem if self.path_cluster else self.path_config.stem
            filename = stem
        if Path(filename).suffix == "":
            filename = f"{filename}.{output.extension}"
        self.output_filename = str(Path(output.folder) / filename)

    @property
    def n_max(self) -> int:
        return self.case.particles.n_max

    @property
    def method(self) -> str:
        return self.case.solver.method

    @property
    def parameters(self) -> dict:
        return self.case.solver.parameters()

    @property
    def second_harmonic(self) -> bool:
        return self.case.second_harmonic

    def geometry(self) -> Geometry:
        return Geometry(list(self.scatterers), self.case.medium.elmag())

    def excitation(self) -> InitialField:
        field = self.case.initial_field
        return InitialField(
            field.wavelength,
            field.amplitude,
            field.polar_angle,
            field.azimuthal_angle,
            field.polarization,
            self.case.medium.elmag(),
        )

    def context(self) -> Context:
        """Process grid, ``YAMS_GRID_ROWS`` and ``YAMS_GRID_COLS`` take precedence."""
        rows, cols = grid_shape_from_env(self.case.numerics.grid)
        return Context(rows, cols)

    def block_size(self) -> tuple[int, int]:
        """Block size, ``YAMS_BLOCK_SIZE`` takes precedence."""
        return block_size_from_env(self.case.numerics.block_size)
