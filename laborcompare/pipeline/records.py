"""
Canonical records.

One record per (geography, domain), rebuilt from scratch every run.
Absent metrics are None and are serialized as JSON null; occupation
records are the exception and drop null fields in their compact form.
"""
from dataclasses import asdict, dataclass, field, fields
from typing import Any, Dict, List, Optional


@dataclass
class CountyRecord:
    fips: str
    name: str
    unemployment_rate: Optional[float] = None
    labor_force: Optional[float] = None
    employment: Optional[float] = None
    median_household_income: Optional[float] = None
    median_earnings: Optional[float] = None
    per_capita_income: Optional[float] = None
    median_home_value: Optional[float] = None
    median_rent: Optional[float] = None
    population: Optional[float] = None
    poverty_rate: Optional[float] = None
    median_age: Optional[float] = None
    bachelors_or_higher_pct: Optional[float] = None
    hs_diploma_or_higher_pct: Optional[float] = None
    gini_index: Optional[float] = None
    homeownership_rate: Optional[float] = None
    vacancy_rate: Optional[float] = None

    @property
    def state_fips(self) -> str:
        return self.fips[:2]

    def to_dict(self) -> Dict[str, Any]:
        """Published shape: everything but the FIPS, which is the key."""
        data = asdict(self)
        data.pop("fips")
        return data


@dataclass
class StateRecord:
    fips: str
    name: str
    unemployment_rate: Optional[float] = None
    labor_force: Optional[float] = None
    employment: Optional[float] = None
    unemployment_count: Optional[float] = None
    total_nonfarm_employment: Optional[float] = None
    avg_hourly_earnings: Optional[float] = None
    avg_weekly_earnings: Optional[float] = None
    avg_weekly_hours: Optional[float] = None
    per_capita_income: Optional[float] = None
    population: Optional[float] = None
    median_household_income: Optional[float] = None
    county_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data.pop("name")
        return data


@dataclass
class MetroRecord:
    cbsa: str
    name: str
    area_code: str
    total_nonfarm_employment: Optional[float] = None
    avg_hourly_earnings: Optional[float] = None
    avg_weekly_earnings: Optional[float] = None
    avg_weekly_hours: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "cbsa": self.cbsa,
            "area_code": self.area_code,
            "total_nonfarm_employment": self.total_nonfarm_employment,
            "avg_hourly_earnings": self.avg_hourly_earnings,
            "avg_weekly_earnings": self.avg_weekly_earnings,
            "avg_weekly_hours": self.avg_weekly_hours,
        }

    @property
    def has_data(self) -> bool:
        return any(
            getattr(self, f.name) is not None
            for f in fields(self)
            if f.name not in ("cbsa", "name", "area_code")
        )


# OccupationRecord attribute -> published short key, in output order
SHORT_KEYS = (
    ("employment", "emp"),
    ("annual_median", "med"),
    ("annual_mean", "avg"),
    ("hourly_median", "hmed"),
    ("hourly_mean", "havg"),
    ("annual_p10", "p10"),
    ("annual_p25", "p25"),
    ("annual_p75", "p75"),
    ("annual_p90", "p90"),
    ("jobs_per_1000", "j1k"),
    ("location_quotient", "lq"),
)

# raw OEWS field -> OccupationRecord attribute
RAW_FIELDS = {
    "tot_emp": "employment",
    "a_median": "annual_median",
    "a_mean": "annual_mean",
    "h_median": "hourly_median",
    "h_mean": "hourly_mean",
    "a_pct10": "annual_p10",
    "a_pct25": "annual_p25",
    "a_pct75": "annual_p75",
    "a_pct90": "annual_p90",
    "jobs_1000": "jobs_per_1000",
    "loc_quotient": "location_quotient",
}


@dataclass
class OccupationRecord:
    """OEWS estimates for one occupation in one area (nation, state or metro)."""
    soc_code: str
    title: str
    group: str
    area_kind: str
    area_id: str
    area_title: str
    employment: Optional[float] = None
    jobs_per_1000: Optional[float] = None
    location_quotient: Optional[float] = None
    hourly_mean: Optional[float] = None
    annual_mean: Optional[float] = None
    hourly_median: Optional[float] = None
    annual_median: Optional[float] = None
    annual_p10: Optional[float] = None
    annual_p25: Optional[float] = None
    annual_p75: Optional[float] = None
    annual_p90: Optional[float] = None
    # attribute names whose value is the provider's wage cap, not an estimate
    capped: List[str] = field(default_factory=list)

    @property
    def major_group(self) -> str:
        return self.soc_code[:2]

    def compact(self) -> Dict[str, Any]:
        """Short-key form with null fields omitted."""
        data: Dict[str, Any] = {}
        for attr, key in SHORT_KEYS:
            value = getattr(self, attr)
            if value is not None:
                data[key] = value
        cap = [key for attr, key in SHORT_KEYS if attr in self.capped]
        if cap:
            data["cap"] = cap
        return data
