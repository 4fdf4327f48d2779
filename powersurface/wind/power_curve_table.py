"""Manufacturer power-curve sheets at several air densities.

Manufacturers publish one power curve per air density in a single wide
sheet::

    WindSpeed  0.95   0.98  ...  1.225  1.27
    3.0        21.0   22.0       27.0   28.0
    ...

The first column is the wind speed; every other column header carries a
numeric density code.  :class:`PowerCurveTable` decodes the codes into
kg/m^3, reshapes the sheet to the long ``(wind_speed, air_density, power)``
form consumed by the surface fitter, and can reshape it back.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

import numpy as np
import pandas as pd
from numpy.typing import NDArray

from powersurface.core.errors import FormatMismatch

logger = logging.getLogger(__name__)

WIND_SPEED = "wind_speed"
AIR_DENSITY = "air_density"
POWER = "power"
LONG_COLUMNS = [WIND_SPEED, AIR_DENSITY, POWER]

_NON_DIGITS = re.compile(r"\D")


def decode_density_code(code: int) -> float:
    """Convert an embedded density code to kg/m^3.

    Codes above 1000 are thousandths (``1225 -> 1.225``); all others are
    hundredths (``95 -> 0.95``, ``127 -> 1.27``).  This is a convention of
    the sheet format, not a physical rule: ``1000`` decodes to 10.0 and
    ``925`` to 9.25.  Supply an explicit mapping to
    :meth:`PowerCurveTable.from_wide` for sheets encoded differently.
    """
    return code / 1000.0 if code > 1000 else code / 100.0


def density_from_header(header: str) -> float:
    """Extract and decode the density code embedded in a column header.

    All digits of the header are joined into one code, so ``"1.225"``,
    ``"X1.225"`` and ``"rho_1225"`` all decode to 1.225 and ``"0.95"`` to
    0.95.

    Raises
    ------
    FormatMismatch
        If the header contains no digits.
    """
    digits = _NON_DIGITS.sub("", str(header))
    if not digits:
        raise FormatMismatch(f"Column {header!r} has no numeric air-density code")
    return decode_density_code(int(digits))


@dataclass(frozen=True)
class PowerCurveTable:
    """Long-form power curve entries, sorted by (air density, wind speed).

    Build instances with :meth:`from_wide` or :meth:`read_csv`; the
    constructor expects an already-validated long frame.

    Attributes
    ----------
    entries : DataFrame
        Columns ``wind_speed``, ``air_density``, ``power``.
    source_columns : dict
        Original wide-sheet column name -> decoded density (kg/m^3).
    wind_speed_label : str
        Header of the wind-speed column in the source sheet.
    """

    entries: pd.DataFrame = field(repr=False)
    source_columns: dict[str, float] = field(default_factory=dict)
    wind_speed_label: str = WIND_SPEED

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def from_wide(
        cls,
        frame: pd.DataFrame,
        density_codes: Mapping[str, float] | None = None,
    ) -> PowerCurveTable:
        """Parse a wide manufacturer sheet.

        Parameters
        ----------
        frame : DataFrame
            First column wind speed (m/s), remaining columns power at one
            air density each.
        density_codes : mapping, optional
            Explicit ``{column name: density in kg/m^3}``.  When given, the
            header heuristic is not used and every power column must appear
            in the mapping.

        Raises
        ------
        FormatMismatch
            If the sheet structure or any cell cannot be interpreted.
        """
        if not isinstance(frame, pd.DataFrame):
            raise FormatMismatch(f"Expected a DataFrame, got {type(frame).__name__}")
        if frame.shape[1] < 2:
            raise FormatMismatch(
                "Power curve sheet needs a wind-speed column and at least one density column, "
                f"got {frame.shape[1]} column(s)"
            )
        if frame.empty:
            raise FormatMismatch("Power curve sheet has no rows")

        ws_label = str(frame.columns[0])
        wind_speed = pd.to_numeric(frame.iloc[:, 0], errors="coerce")
        if wind_speed.isna().any():
            raise FormatMismatch(f"Wind-speed column {ws_label!r} has non-numeric or blank cells")
        if wind_speed.duplicated().any():
            raise FormatMismatch(f"Wind-speed column {ws_label!r} has duplicate values")

        densities: dict[str, float] = {}
        for col in frame.columns[1:]:
            if density_codes is not None:
                if col not in density_codes:
                    raise FormatMismatch(f"Column {col!r} missing from the supplied density mapping")
                densities[str(col)] = float(density_codes[col])
            else:
                densities[str(col)] = density_from_header(col)

        decoded = list(densities.values())
        if len(set(decoded)) != len(decoded):
            raise FormatMismatch(f"Duplicate decoded air densities: {sorted(decoded)}")

        power = frame.iloc[:, 1:].apply(pd.to_numeric, errors="coerce")
        non_numeric = power.isna() & frame.iloc[:, 1:].notna()
        if non_numeric.to_numpy().any():
            raise FormatMismatch("Power columns contain non-numeric cells")

        power.columns = [str(c) for c in power.columns]
        power.insert(0, WIND_SPEED, wind_speed.to_numpy(dtype=np.float64))

        long = power.melt(id_vars=WIND_SPEED, var_name="_column", value_name=POWER)
        long[AIR_DENSITY] = long["_column"].map(densities)
        long = long.dropna(subset=[POWER])
        long = long[LONG_COLUMNS].astype(np.float64)

        table = cls(
            entries=long.sort_values([AIR_DENSITY, WIND_SPEED], kind="mergesort").reset_index(drop=True),
            source_columns=densities,
            wind_speed_label=ws_label,
        )
        logger.info(
            "Loaded power curve: %d wind speeds x %d densities (%d entries)",
            len(wind_speed),
            len(densities),
            len(table),
        )
        return table

    @classmethod
    def read_csv(
        cls,
        path_or_buffer: Any,
        density_codes: Mapping[str, float] | None = None,
        **read_csv_kwargs: Any,
    ) -> PowerCurveTable:
        """Read a wide sheet with :func:`pandas.read_csv` and parse it."""
        return cls.from_wide(pd.read_csv(path_or_buffer, **read_csv_kwargs), density_codes=density_codes)

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self.entries)

    @property
    def densities(self) -> NDArray[np.floating]:
        """Published air densities, ascending (kg/m^3)."""
        return np.sort(self.entries[AIR_DENSITY].unique())

    @property
    def wind_speeds(self) -> NDArray[np.floating]:
        """Distinct wind speeds across all densities, ascending (m/s)."""
        return np.sort(self.entries[WIND_SPEED].unique())

    def column(self, air_density: float, atol: float = 1e-9) -> pd.Series:
        """Power per wind speed for one published density."""
        mask = np.isclose(self.entries[AIR_DENSITY].to_numpy(), air_density, rtol=0.0, atol=atol)
        if not mask.any():
            raise KeyError(f"No published curve at air density {air_density}")
        sub = self.entries.loc[mask]
        return pd.Series(sub[POWER].to_numpy(), index=pd.Index(sub[WIND_SPEED].to_numpy(), name=WIND_SPEED), name=POWER)

    def arrays(self) -> tuple[NDArray[np.floating], NDArray[np.floating], NDArray[np.floating]]:
        """``(wind_speed, air_density, power)`` as float64 arrays."""
        return (
            self.entries[WIND_SPEED].to_numpy(dtype=np.float64),
            self.entries[AIR_DENSITY].to_numpy(dtype=np.float64),
            self.entries[POWER].to_numpy(dtype=np.float64),
        )

    # ------------------------------------------------------------------
    # Reshaping
    # ------------------------------------------------------------------

    def to_wide(self, use_source_columns: bool = True) -> pd.DataFrame:
        """Reshape back to one power column per density.

        The result is indexed by wind speed.  With *use_source_columns* the
        original headers are restored (in the original column order);
        otherwise columns are labelled by density in kg/m^3.
        """
        wide = self.entries.pivot(index=WIND_SPEED, columns=AIR_DENSITY, values=POWER)
        wide.columns.name = None
        if use_source_columns and self.source_columns:
            by_density = {rho: name for name, rho in self.source_columns.items()}
            wide = wide.rename(columns=by_density)[list(self.source_columns)]
        wide.index.name = self.wind_speed_label if use_source_columns else WIND_SPEED
        return wide
