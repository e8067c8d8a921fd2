"""
Configuration management and loading.

Reads tariff tables, general settings and monthly plans for both domains
from a YAML file.
"""

import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

import yaml

from chamber_billing.core.cost_engine import Settings
from chamber_billing.core.records import Domain
from chamber_billing.core.statistics import ExpertPlan, MonthlyPlan, plan_for_month
from chamber_billing.core.tariffs import (
    CertificateSettings,
    ConclusionSettings,
    PageBandCosts,
    TariffTable,
    TariffTierRow,
    to_count,
    to_decimal,
)

CONFIG_ENV_VAR = "CHAMBER_BILLING_CONFIG"
DEFAULT_CONFIG_PATH = "chamber_billing.yaml"

_MONTH_PATTERN = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")

_CONCLUSION_SETTINGS_KEYS = {'urgency', 'code_cost', 'discount', 'complexity', 'contractual_page_cost'}
_CERTIFICATE_SETTINGS_KEYS = {
    'urgency', 'additional_page_cost', 'replacement_cost', 'reissuance_cost',
    'duplicate_cost', 'fully_produced', 'sufficient_processing'
}
_PAGE_BAND_KEYS = {'up_to_20_pages', 'from_21_to_200_pages', 'plus_201_pages', 'additional_position'}
_TARIFF_ROW_KEYS = {'models', 'up_to_10', 'up_to_20', 'up_to_50', 'plus_51'}
_PLAN_KEYS = {'total_plan', 'experts'}


@dataclass(frozen=True)
class DomainConfig:
    """Tariff configuration of one domain."""
    settings: Settings
    tariff_table: TariffTable = field(default_factory=TariffTable)
    monthly_plans: Dict[str, MonthlyPlan] = field(default_factory=dict)

    def plan_for_month(self, month: str) -> MonthlyPlan:
        """Plan of a month, or an empty plan when none was set."""
        return plan_for_month(self.monthly_plans, month)


@dataclass(frozen=True)
class BillingConfig:
    """Configuration for both domains. The two never share settings."""
    conclusions: DomainConfig = field(
        default_factory=lambda: DomainConfig(settings=ConclusionSettings())
    )
    certificates: DomainConfig = field(
        default_factory=lambda: DomainConfig(settings=CertificateSettings())
    )

    def for_domain(self, domain: Union[str, Domain]) -> DomainConfig:
        """Get the configuration of a domain.

        Raises:
            ValueError: If the domain is not recognized
        """
        if Domain.parse(domain) is Domain.CERTIFICATES:
            return self.certificates
        return self.conclusions


def resolve_config_path(path: Optional[str] = None) -> str:
    """Pick the config path: explicit argument, then environment, then default."""
    return path or os.environ.get(CONFIG_ENV_VAR) or DEFAULT_CONFIG_PATH


def load_billing_config(path: str) -> BillingConfig:
    """Load and validate billing configuration from a YAML file.

    Section and key names are validated strictly so a typo cannot
    silently zero a price. Numeric values themselves are read leniently:
    absent or unreadable numbers count as 0.

    Args:
        path: Path to YAML configuration file

    Returns:
        Validated BillingConfig object

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If YAML is invalid
        ValueError: If configuration is invalid
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Billing config file not found: {path}")

    with open(config_path, 'r', encoding='utf-8') as f:
        try:
            raw_config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise yaml.YAMLError(f"Invalid YAML in config file {path}: {e}")

    if not raw_config:
        raise ValueError("Configuration file is empty")

    return parse_billing_config(raw_config)


def parse_billing_config(raw_config: Mapping[str, Any]) -> BillingConfig:
    """Validate an already parsed configuration mapping.

    Raises:
        ValueError: If configuration is invalid
    """
    if not isinstance(raw_config, dict):
        raise ValueError("Configuration must be a dictionary")

    _check_keys(raw_config, {'conclusions', 'certificates'}, "configuration")

    conclusions_data = _section(raw_config, 'conclusions', "conclusions")
    _check_keys(conclusions_data, {'general_settings', 'tariff_table', 'monthly_plans'}, "conclusions")

    certificates_data = _section(raw_config, 'certificates', "certificates")
    _check_keys(certificates_data, {'general_settings', 'monthly_plans'}, "certificates")

    conclusions = DomainConfig(
        settings=_parse_conclusion_settings(
            _section(conclusions_data, 'general_settings', "conclusions.general_settings")
        ),
        tariff_table=_parse_tariff_table(conclusions_data.get('tariff_table') or []),
        monthly_plans=_parse_monthly_plans(
            _section(conclusions_data, 'monthly_plans', "conclusions.monthly_plans"),
            "conclusions.monthly_plans"
        )
    )
    certificates = DomainConfig(
        settings=_parse_certificate_settings(
            _section(certificates_data, 'general_settings', "certificates.general_settings")
        ),
        monthly_plans=_parse_monthly_plans(
            _section(certificates_data, 'monthly_plans', "certificates.monthly_plans"),
            "certificates.monthly_plans"
        )
    )
    return BillingConfig(conclusions=conclusions, certificates=certificates)


def _check_keys(data: Mapping, allowed: set, path: str) -> None:
    unknown_keys = set(data.keys()) - allowed
    if unknown_keys:
        raise ValueError(f"Unknown keys in {path}: {unknown_keys}")


def _section(data: Mapping, key: str, path: str) -> Dict:
    """Get an optional dictionary section; a missing or null section is empty."""
    value = data.get(key)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ValueError(f"'{path}' must be a dictionary")
    return value


def _parse_conclusion_settings(data: Dict) -> ConclusionSettings:
    _check_keys(data, _CONCLUSION_SETTINGS_KEYS, "conclusions.general_settings")
    return ConclusionSettings(**{key: to_decimal(data.get(key)) for key in _CONCLUSION_SETTINGS_KEYS})


def _parse_page_bands(data: Dict, path: str) -> PageBandCosts:
    _check_keys(data, _PAGE_BAND_KEYS, path)
    return PageBandCosts(**{key: to_decimal(data.get(key)) for key in _PAGE_BAND_KEYS})


def _parse_certificate_settings(data: Dict) -> CertificateSettings:
    path = "certificates.general_settings"
    _check_keys(data, _CERTIFICATE_SETTINGS_KEYS, path)

    flat_keys = _CERTIFICATE_SETTINGS_KEYS - {'fully_produced', 'sufficient_processing'}
    return CertificateSettings(
        fully_produced=_parse_page_bands(
            _section(data, 'fully_produced', f"{path}.fully_produced"), f"{path}.fully_produced"
        ),
        sufficient_processing=_parse_page_bands(
            _section(data, 'sufficient_processing', f"{path}.sufficient_processing"),
            f"{path}.sufficient_processing"
        ),
        **{key: to_decimal(data.get(key)) for key in flat_keys}
    )


def _parse_tariff_table(rows: Any) -> TariffTable:
    """Parse tariff tier rows.

    Raises:
        ValueError: If the table is not a list or a row has no model count
    """
    if not isinstance(rows, list):
        raise ValueError("'conclusions.tariff_table' must be a list")

    parsed = []
    for index, row in enumerate(rows):
        path = f"conclusions.tariff_table[{index}]"
        if not isinstance(row, dict):
            raise ValueError(f"'{path}' must be a dictionary")
        _check_keys(row, _TARIFF_ROW_KEYS, path)
        if row.get('models') is None:
            raise ValueError(f"Missing required 'models' in {path}")
        parsed.append(TariffTierRow(
            models=to_count(row['models']),
            up_to_10=to_decimal(row.get('up_to_10')),
            up_to_20=to_decimal(row.get('up_to_20')),
            up_to_50=to_decimal(row.get('up_to_50')),
            plus_51=to_decimal(row.get('plus_51'))
        ))
    return TariffTable.from_rows(parsed)


def _parse_monthly_plans(data: Dict, path: str) -> Dict[str, MonthlyPlan]:
    plans = {}
    for month, plan_data in data.items():
        month = str(month)
        if not _MONTH_PATTERN.match(month):
            raise ValueError(f"Invalid month '{month}' in {path}, expected YYYY-MM")
        plan_path = f"{path}.{month}"
        plan_data = plan_data or {}
        if not isinstance(plan_data, dict):
            raise ValueError(f"'{plan_path}' must be a dictionary")
        _check_keys(plan_data, _PLAN_KEYS, plan_path)

        experts = _section(plan_data, 'experts', f"{plan_path}.experts")
        plans[month] = MonthlyPlan(
            total_plan=to_decimal(plan_data.get('total_plan')),
            expert_plans=[
                ExpertPlan(name=str(name), plan_amount=to_decimal(amount))
                for name, amount in experts.items()
            ]
        )
    return plans
