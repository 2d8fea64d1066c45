"""
Audience-size lookup from a demographic population table.

The table holds population counts per DMA, sex and age cell, plus the
household count of each DMA. Audience sizes for any age range and sex are
summed from the cells on the fly.
"""

import pandas as pd
import logging
from typing import List, Optional, Tuple
from pathlib import Path

# Set up logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


# Census age cells for adults; the last cell is open-ended (85+)
AGE_CELL_RANGES: List[Tuple[int, int]] = [
    (18, 19), (20, 20), (21, 21), (22, 24), (25, 29), (30, 34), (35, 39),
    (40, 44), (45, 49), (50, 54), (55, 59), (60, 64), (65, 69), (70, 74),
    (75, 79), (80, 84), (85, 999),
]

AGE_SNAP_POINTS: List[int] = [age_min for age_min, _ in AGE_CELL_RANGES]

SEXES = ('adults', 'males', 'females')

HOUSEHOLDS = 'households'

HOUSEHOLDS_LABEL = "Households"

REQUIRED_COLUMNS = ['dma_code', 'dma_name', 'households', 'sex', 'age_min', 'age_max', 'population']


def format_demo_label(sex: str, age_min: int, age_max: int) -> str:
    """Human-readable demographic label, e.g. 'Adults 25-54' or 'Males 18+'."""
    sex_label = {'adults': "Adults", 'males': "Males", 'females': "Females"}.get(sex, "Adults")
    max_label = "+" if age_max >= 85 else f"-{age_max}"
    return f"{sex_label} {age_min}{max_label}"


class AudienceTable:
    """
    Read-only population table keyed by DMA code.

    Rows are long-format: one row per DMA, sex ('M' or 'F') and age cell.
    """

    def __init__(self, df: pd.DataFrame):
        self.df = df

    def list_markets(self) -> List[Tuple[str, str]]:
        """(code, name) pairs for every DMA in the table, in file order."""
        markets = self.df[['dma_code', 'dma_name']].drop_duplicates('dma_code')
        return list(markets.itertuples(index=False, name=None))

    def compute_audience_size(self, dma_code: str, age_min: int, age_max: int,
                              sex: str = 'adults') -> Optional[int]:
        """
        Population of a DMA within an age range for a sex filter.

        Every age cell that overlaps [age_min, age_max] is included in full.

        Args:
            dma_code: DMA code ("0" for US National)
            age_min: Minimum age, inclusive
            age_max: Maximum age, inclusive (85 or more for no upper bound)
            sex: 'adults' (both), 'males' or 'females'

        Returns:
            Population count, or None if the DMA is not in the table
        """
        if sex not in SEXES:
            raise ValueError(f"Unknown sex filter: {sex}. Use one of: {', '.join(SEXES)}")

        market = self.df[self.df['dma_code'] == str(dma_code)]
        if market.empty:
            return None

        cells = market[(market['age_min'] <= age_max) & (market['age_max'] >= age_min)]
        if sex == 'males':
            cells = cells[cells['sex'] == 'M']
        elif sex == 'females':
            cells = cells[cells['sex'] == 'F']

        return int(cells['population'].sum())

    def get_households(self, dma_code: str) -> Optional[int]:
        """Household count for a DMA, or None if the DMA is unknown."""
        market = self.df[self.df['dma_code'] == str(dma_code)]
        if market.empty:
            return None
        return int(market['households'].iloc[0])

    def lookup(self, dma_code: str, age_min: int, age_max: int,
               basis: str = 'adults') -> Tuple[str, Optional[int]]:
        """
        Audience label and size for a lookup selection.

        Args:
            dma_code: DMA code ("0" for US National)
            age_min: Minimum age, inclusive
            age_max: Maximum age, inclusive
            basis: A sex filter, or 'households' to count homes instead of people

        Returns:
            Tuple of (audience label, size or None if the DMA is unknown)
        """
        if basis == HOUSEHOLDS:
            return HOUSEHOLDS_LABEL, self.get_households(dma_code)
        return format_demo_label(basis, age_min, age_max), self.compute_audience_size(dma_code, age_min, age_max, basis)


class AudienceDataParser:
    """
    Parser for audience population files (CSV or Excel).

    Validates the column layout and cleans codes and counts so lookups can
    compare codes as strings.
    """

    def __init__(self, file_path: str):
        """
        Initialize the parser with an audience data file path.

        Args:
            file_path: Path to the CSV or Excel audience file
        """
        self.file_path = Path(file_path)

        if not self.file_path.exists():
            raise FileNotFoundError(f"Audience data file not found: {file_path}")

    def parse(self) -> AudienceTable:
        """
        Read and validate the audience file.

        Returns:
            AudienceTable over the cleaned data

        Raises:
            ValueError: If required columns are missing or values are malformed
        """
        if self.file_path.suffix.lower() in ('.xlsx', '.xls'):
            df = pd.read_excel(self.file_path, dtype={'dma_code': str})
        else:
            df = pd.read_csv(self.file_path, dtype={'dma_code': str})

        df.columns = [str(col).strip().lower() for col in df.columns]

        missing = [col for col in REQUIRED_COLUMNS if col not in df.columns]
        if missing:
            raise ValueError(f"Audience data file is missing columns: {', '.join(missing)}")

        df = df[REQUIRED_COLUMNS].dropna(subset=['dma_code', 'sex', 'age_min', 'age_max'])
        df['dma_code'] = df['dma_code'].astype(str).str.strip()
        df['dma_name'] = df['dma_name'].astype(str).str.strip()
        df['sex'] = df['sex'].astype(str).str.strip().str.upper()

        bad_sex = ~df['sex'].isin(['M', 'F'])
        if bad_sex.any():
            raise ValueError(f"Invalid sex values in audience data: {sorted(df.loc[bad_sex, 'sex'].unique())}")

        try:
            for col in ('households', 'age_min', 'age_max', 'population'):
                df[col] = pd.to_numeric(df[col], errors='raise').fillna(0).astype(int)
        except (TypeError, ValueError) as e:
            raise ValueError(f"Invalid numeric value in audience data: {str(e)}")

        if (df['population'] < 0).any():
            raise ValueError("Audience data contains negative population counts")

        logger.info(f"Parsed audience data for {df['dma_code'].nunique()} markets from {self.file_path.name}")
        return AudienceTable(df.reset_index(drop=True))
