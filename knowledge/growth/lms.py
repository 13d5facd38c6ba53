"""
Percentile bands derived from CDC 2000 LMS parameters.

Reference: https://www.cdc.gov/growthcharts/

The LMS method gives the measurement at a z-score as:

value = M * (1 + L * S * z)^(1/L)   when L != 0
value = M * exp(S * z)              when L = 0

with z = Φ⁻¹(percentile / 100). This module turns the LMS tables into the
P3..P97 bands used by GrowthStandardTable, for any whole month from 0 to 240.
"""

from __future__ import annotations

import math
from typing import Literal

from scipy import stats

# LMS parameters for CDC 2000 growth charts
# Format: age_months -> (L, M, S), sampled at key ages

# Weight-for-age (kg), Males, 0-240 months
WEIGHT_FOR_AGE_MALE: dict[int, tuple[float, float, float]] = {
    0: (-0.3053, 3.530, 0.1514),
    1: (0.0977, 4.470, 0.1359),
    2: (0.1890, 5.380, 0.1296),
    3: (0.1346, 6.123, 0.1256),
    6: (-0.0171, 7.934, 0.1215),
    9: (-0.1667, 9.180, 0.1182),
    12: (-0.2714, 10.15, 0.1149),
    18: (-0.3823, 11.47, 0.1127),
    24: (-0.4242, 12.59, 0.1139),
    36: (-0.4669, 14.34, 0.1198),
    48: (-0.5614, 16.33, 0.1307),
    60: (-0.7159, 18.62, 0.1441),
    72: (-0.8876, 20.93, 0.1555),
    84: (-1.0100, 23.39, 0.1644),
    96: (-1.0682, 25.94, 0.1722),
    108: (-1.0708, 28.58, 0.1803),
    120: (-1.0240, 31.44, 0.1893),
    132: (-0.9476, 34.77, 0.1979),
    144: (-0.8693, 38.91, 0.2044),
    156: (-0.8237, 43.87, 0.2082),
    168: (-0.8247, 49.49, 0.2091),
    180: (-0.8659, 55.38, 0.2070),
    192: (-0.9402, 60.98, 0.2016),
    204: (-1.0346, 65.89, 0.1934),
    216: (-1.1413, 70.11, 0.1837),
    228: (-1.2545, 73.71, 0.1737),
    240: (-1.3686, 76.78, 0.1642),
}

# Weight-for-age (kg), Females, 0-240 months
WEIGHT_FOR_AGE_FEMALE: dict[int, tuple[float, float, float]] = {
    0: (-0.3821, 3.399, 0.1433),
    1: (0.1744, 4.187, 0.1319),
    2: (0.3421, 5.030, 0.1253),
    3: (0.3181, 5.720, 0.1216),
    6: (0.0813, 7.351, 0.1192),
    9: (-0.0810, 8.475, 0.1175),
    12: (-0.1887, 9.363, 0.1162),
    18: (-0.3076, 10.67, 0.1165),
    24: (-0.3523, 11.91, 0.1202),
    36: (-0.3964, 13.86, 0.1294),
    48: (-0.4995, 16.06, 0.1411),
    60: (-0.6602, 18.48, 0.1522),
    72: (-0.8193, 20.93, 0.1612),
    84: (-0.9386, 23.53, 0.1691),
    96: (-0.9953, 26.31, 0.1774),
    108: (-0.9883, 29.34, 0.1868),
    120: (-0.9237, 32.78, 0.1970),
    132: (-0.8150, 36.90, 0.2068),
    144: (-0.6885, 41.74, 0.2141),
    156: (-0.5772, 47.00, 0.2173),
    168: (-0.5079, 52.11, 0.2163),
    180: (-0.4868, 56.56, 0.2116),
    192: (-0.5076, 60.08, 0.2042),
    204: (-0.5573, 62.68, 0.1954),
    216: (-0.6252, 64.52, 0.1865),
    228: (-0.7040, 65.81, 0.1784),
    240: (-0.7893, 66.75, 0.1714),
}

# Height/Length-for-age (cm), Males, 0-240 months
HEIGHT_FOR_AGE_MALE: dict[int, tuple[float, float, float]] = {
    0: (0.3487, 49.99, 0.0379),
    1: (0.1550, 54.72, 0.0370),
    2: (0.0093, 58.42, 0.0365),
    3: (-0.0928, 61.43, 0.0363),
    6: (-0.2623, 67.62, 0.0358),
    9: (-0.3040, 72.03, 0.0356),
    12: (-0.2847, 75.75, 0.0356),
    18: (-0.1884, 82.39, 0.0357),
    24: (-0.0554, 87.78, 0.0363),
    36: (0.1957, 96.10, 0.0393),
    48: (0.2708, 102.9, 0.0417),
    60: (0.2204, 109.2, 0.0432),
    72: (0.1080, 115.1, 0.0445),
    84: (-0.0168, 120.8, 0.0457),
    96: (-0.1368, 126.2, 0.0468),
    108: (-0.2427, 131.5, 0.0479),
    120: (-0.3254, 136.8, 0.0490),
    132: (-0.3816, 142.4, 0.0500),
    144: (-0.4097, 148.7, 0.0505),
    156: (-0.4134, 155.5, 0.0502),
    168: (-0.3994, 162.2, 0.0489),
    180: (-0.3757, 168.1, 0.0465),
    192: (-0.3502, 172.7, 0.0437),
    204: (-0.3295, 175.8, 0.0412),
    216: (-0.3173, 177.6, 0.0396),
    228: (-0.3134, 178.6, 0.0386),
    240: (-0.3155, 179.1, 0.0382),
}

# Height/Length-for-age (cm), Females, 0-240 months
HEIGHT_FOR_AGE_FEMALE: dict[int, tuple[float, float, float]] = {
    0: (0.3809, 49.29, 0.0379),
    1: (0.1700, 53.69, 0.0369),
    2: (0.0178, 57.07, 0.0365),
    3: (-0.0858, 59.80, 0.0361),
    6: (-0.2777, 65.73, 0.0353),
    9: (-0.3379, 70.11, 0.0350),
    12: (-0.3433, 73.96, 0.0349),
    18: (-0.2962, 80.80, 0.0352),
    24: (-0.2046, 86.40, 0.0362),
    36: (0.0047, 94.86, 0.0399),
    48: (0.0884, 101.8, 0.0428),
    60: (0.0696, 108.4, 0.0449),
    72: (-0.0049, 114.6, 0.0467),
    84: (-0.0919, 120.6, 0.0484),
    96: (-0.1759, 126.4, 0.0502),
    108: (-0.2483, 132.0, 0.0519),
    120: (-0.3033, 137.5, 0.0537),
    132: (-0.3380, 143.3, 0.0553),
    144: (-0.3547, 149.4, 0.0560),
    156: (-0.3600, 155.0, 0.0556),
    168: (-0.3607, 159.5, 0.0540),
    180: (-0.3608, 162.5, 0.0518),
    192: (-0.3616, 164.2, 0.0498),
    204: (-0.3632, 165.0, 0.0484),
    216: (-0.3655, 165.4, 0.0477),
    228: (-0.3684, 165.6, 0.0474),
    240: (-0.3718, 165.7, 0.0473),
}

LMS_TABLES: dict[tuple[str, str], dict[int, tuple[float, float, float]]] = {
    ("height", "male"): HEIGHT_FOR_AGE_MALE,
    ("height", "female"): HEIGHT_FOR_AGE_FEMALE,
    ("weight", "male"): WEIGHT_FOR_AGE_MALE,
    ("weight", "female"): WEIGHT_FOR_AGE_FEMALE,
}

MIN_AGE_MONTHS = 0
MAX_AGE_MONTHS = 240


def _interpolate_lms(
    age_months: int,
    lms_table: dict[int, tuple[float, float, float]],
) -> tuple[float, float, float]:
    """
    Interpolate LMS values for a given age.
    Uses linear interpolation between known points.
    """
    ages = sorted(lms_table.keys())

    if age_months in lms_table:
        return lms_table[age_months]

    # Clamp to range
    if age_months < ages[0]:
        return lms_table[ages[0]]
    if age_months > ages[-1]:
        return lms_table[ages[-1]]

    lower_age = max(a for a in ages if a < age_months)
    upper_age = min(a for a in ages if a > age_months)

    t = (age_months - lower_age) / (upper_age - lower_age)

    L1, M1, S1 = lms_table[lower_age]
    L2, M2, S2 = lms_table[upper_age]

    return L1 + t * (L2 - L1), M1 + t * (M2 - M1), S1 + t * (S2 - S1)


def _value_from_lms_z(z: float, L: float, M: float, S: float) -> float:
    """Calculate value from Z-score and LMS parameters."""
    if abs(L) < 1e-10:  # L ≈ 0
        return M * math.exp(z * S)
    return M * math.pow(1 + L * S * z, 1 / L)


def value_at_percentile(
    percentile: float,
    age_months: int,
    sex: Literal["male", "female"],
    measurement: Literal["height", "weight"],
) -> float:
    """
    Measurement value sitting exactly on a percentile line.

    Args:
        percentile: Target percentile (0-100, exclusive)
        age_months: Age in months (clamped to 0-240)
        sex: "male" or "female"
        measurement: "height" (cm) or "weight" (kg)
    """
    L, M, S = _interpolate_lms(age_months, LMS_TABLES[(measurement, sex)])
    z = stats.norm.ppf(percentile / 100)
    return round(_value_from_lms_z(z, L, M, S), 2)


def bands_at(
    age_months: int,
    sex: Literal["male", "female"],
    measurement: Literal["height", "weight"],
    percentiles: tuple[int, ...],
) -> dict[int, float]:
    """Values for each requested percentile line at one age."""
    return {
        p: value_at_percentile(p, age_months, sex, measurement)
        for p in percentiles
    }
