import _pickle
import bz2
import json
from pathlib import Path
from typing import Any

import numpy as np
import yaml
from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.dataclasses import dataclass
from scipy.io import savemat
from typing_extensions import Self

from yamspy.result import Result


@dataclass
class Scatterers:
    position: list[list[float]] = Field()
    radii: list[float] = Field()
    epsilon: list[list[float]] = Field()
    mu: list[list[float]] = Field()
    n_max: int = Field()

    @model_validator(mode="after")
    def number_of_elements(self) -> Self:
        if len(self.position) != len(self.radii):
            raise ValueError(
                f"Number of elements in position ({len(self.position)}) and radii ({len(self.radii)}) are not compatible"
            )
        return self


@dataclass
class Excitation:
    wavelength: float = Field()
    amplitude: list[float] = Field(default=[1.0, 0.0])
    polar_angle: float = Field(default=0.0)
    azimuthal_angle: float = Field(default=0.0)
    polarization: list[list[float]] = Field(default=[[0.0, 0.0], [1.0, 0.0]])
    medium: list[list[float]] = Field(default=[[1.0, 0.0], [1.0, 0.0]])


@dataclass
class Coefficients:
    scattered: list[list[float]] = Field(default=[])
    internal: list[list[float]] = Field(default=[])

    @model_validator(mode="after")
    def same_length(self) -> Self:
        if len(self.scattered) != len(self.internal):
            raise ValueError(
                f"Scattered ({len(self.scattered)}) and internal ({len(self.internal)}) coefficients differ in length"
            )
        return self


def _pairs(values) -> list[list[float]]:
    values = np.atleast_1d(np.asarray(values, dtype=complex))
    return np.column_stack((values.real, values.imag)).tolist()


def _complex(pairs) -> np.ndarray:
    pairs = np.asarray(pairs, dtype=float).reshape(-1, 2)
    return pairs[:, 0] + 1j * pairs[:, 1]


class Export(BaseModel):
    source: str = Field(default="yams", pattern=r"yams")
    method: str = Field(default="direct", pattern=r"direct|indirect")
    second_harmonic: bool = Field(default=False)
    scatterers: Scatterers | dict = Field(default={})
    excitation: Excitation | dict = Field(default={})
    coefficients: Coefficients | dict = Field(default={})

    model_config: ConfigDict = ConfigDict(arbitrary_types_allowed=True)

    def model_post_init(self, __context: Any) -> None:
        if isinstance(self.scatterers, dict):
            self.scatterers = Scatterers(**self.scatterers)
        if isinstance(self.excitation, dict):
            self.excitation = Excitation(**self.excitation)
        if isinstance(self.coefficients, dict):
            self.coefficients = Coefficients(**self.coefficients)

    @classmethod
    def from_result(cls, result: Result) -> "Export":
        geometry = result.geometry
        excitation = result.excitation
        return cls(
            method=result.method,
            second_harmonic=result.is_second_harmonic,
            scatterers=dict(
                position=geometry.positions.tolist(),
                radii=[scatterer.radius for scatterer in geometry],
                epsilon=_pairs([scatterer.elmag.epsilon_r for scatterer in geometry]),
                mu=_pairs([scatterer.elmag.mu_r for scatterer in geometry]),
                n_max=result.n_max,
            ),
            excitation=dict(
                wavelength=excitation.wavelength,
                amplitude=_pairs(excitation.amplitude)[0],
                polar_angle=excitation.polar_angle,
                azimuthal_angle=excitation.azimuthal_angle,
                polarization=_pairs(excitation.pol),
                medium=_pairs([excitation.medium.epsilon_r, excitation.medium.mu_r]),
            ),
            coefficients=dict(
                scattered=_pairs(result.scattered_coef),
                internal=_pairs(result.internal_coef),
            ),
        )

    @property
    def scattered(self) -> np.ndarray:
        return _complex(self.coefficients.scattered)

    @property
    def internal(self) -> np.ndarray:
        return _complex(self.coefficients.internal)

    def save(self, filename: str | Path) -> None:
        if isinstance(filename, str):
            filename = Path(filename)

        match filename.suffix:
            case ".json":
                with open(filename, "w") as f:
                    json.dump(self.model_dump(), f, indent=4)
            case ".yml" | ".yaml":
                with open(filename, "w") as f:
                    yaml.dump(self.model_dump(), f)
            case ".pkl":
                with open(filename, "wb") as f:
                    _pickle.dump(self.model_dump(), f)
            case ".bz2" | ".pbz2":
                with bz2.BZ2File(filename, "w") as outfile:
                    _pickle.dump(self.model_dump(), outfile)
            case ".mat":
                savemat(filename, self.model_dump())
            case _:
                raise ValueError(f"Unknown file extension {filename.suffix}")

    @classmethod
    def load(cls, filename: str | Path) -> "Export":
        if isinstance(filename, str):
            filename = Path(filename)

        match filename.suffix:
            case ".json":
                with open(filename) as f:
                    data = json.load(f)
            case ".yml" | ".yaml":
                with open(filename) as f:
                    data = yaml.safe_load(f)
            case ".pkl":
                with open(filename, "rb") as f:
                    data = _pickle.load(f)
            case ".bz2" | ".pbz2":
                with bz2.BZ2File(filename, "r") as infile:
                    data = _pickle.load(infile)
            case _:
                raise ValueError(f"Cannot load files with extension {filename.suffix}")
        return cls(**data)
