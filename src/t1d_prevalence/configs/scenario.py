# scenario.py
"""
Sensitivity-analysis toggles applied by the input-matrix builder.
"""
import json
from pathlib import Path
from dataclasses import dataclass, fields
from typing import Dict, Any, List

from t1d_prevalence.configs import global_configs as c


@dataclass(frozen=True)
class ScenarioFlags:
    pediatric_incidence_plus_10_perc: bool = False
    pediatric_incidence_minus_10_perc: bool = False
    pediatric_incidence_plus_25_perc: bool = False
    pediatric_incidence_minus_25_perc: bool = False

    smr_plus_10_perc: bool = False
    smr_minus_10_perc: bool = False

    diagnosis_rate_plus_25_pp: bool = False
    diagnosis_rate_minus_25_pp: bool = False
    diagnosis_rate_left: bool = False
    diagnosis_rate_right: bool = False

    def __post_init__(self):
        self._validate_inputs()

    @property
    def is_default(self) -> bool:
        return not any(getattr(self, f.name) for f in fields(self))

    @property
    def active(self) -> List[str]:
        return [f.name for f in fields(self) if getattr(self, f.name)]

    @property
    def pediatric_incidence_factor(self) -> float:
        factor = 1.0
        for name, value in c.PEDIATRIC_INCIDENCE_FACTORS.items():
            if getattr(self, name):
                factor *= value
        return factor

    @property
    def smr_factor(self) -> float:
        factor = 1.0
        for name, value in c.SMR_FACTORS.items():
            if getattr(self, name):
                factor *= value
        return factor

    def __str__(self) -> str:
        return "default" if self.is_default else "+".join(self.active)

    def _validate_inputs(self):
        """Only one toggle per group may be switched on."""
        errs = []
        groups = {
            "pediatric incidence": list(c.PEDIATRIC_INCIDENCE_FACTORS),
            "SMR": list(c.SMR_FACTORS),
            "diagnosis rate shift": [
                "diagnosis_rate_plus_25_pp",
                "diagnosis_rate_minus_25_pp",
            ],
            "diagnosis rate curve": ["diagnosis_rate_left", "diagnosis_rate_right"],
        }
        for group, names in groups.items():
            on = [n for n in names if getattr(self, n)]
            if len(on) > 1:
                errs.append(f"Conflicting {group} toggles: {', '.join(on)}")
        for f in fields(self):
            if not isinstance(getattr(self, f.name), bool):
                errs.append(f"{f.name} must be a bool")

        if errs:
            raise ValueError("\n".join(errs))


# ---------- JSON loading  ----------
def _from_json_item(s: Dict[str, Any]) -> ScenarioFlags:
    known = {f.name for f in fields(ScenarioFlags)}
    unknown = set(s) - known - {"name"}
    if unknown:
        raise ValueError(f"Unknown scenario toggles: {sorted(unknown)}")
    return ScenarioFlags(**{k: v for k, v in s.items() if k in known})


def load_scenario_flags(path: str | Path) -> Dict[str, ScenarioFlags]:
    """
    Load named scenarios, either {"scenarios": [{"name": ..., <toggles>}]}
    or a bare list of such items.
    """
    data = json.loads(Path(path).read_text())
    items = data.get("scenarios", data) if isinstance(data, dict) else data
    if not isinstance(items, list):
        raise ValueError("Invalid JSON: expected a list or a 'scenarios' list.")
    return {s.get("name", str(idx)): _from_json_item(s) for idx, s in enumerate(items)}
