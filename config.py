# -*- coding: utf-8 -*-
"""
Planning engine configuration. Every tunable of the balance and propagation
rules lives here; deployments override parts of it through a JSON/YAML file.
"""
import logging

CONFIG = {
    # Agent defaults when the agent/entitlement collaborator sends nothing
    "default_weekly_hours": 35,

    # Entitlements
    "entitlements": {
        "annual_leave_days": 25,
        "sick_child_days": 3,  # per child under 16, per year
        # RTT steps in hours: first matching "min_weekly_hours" wins (18 days x 7h, 6 days x 7h)
        "rtt_steps": [
            {"min_weekly_hours": 38, "hours": 126},
            {"min_weekly_hours": 36, "hours": 42},
        ],
        # Training hours: 3/8 of weekly hours, only for these roles
        "formation_roles": ["chef_service", "medecin"],
        "formation_ratio": 0.375,
    },

    # Leave type -> balance category. Hour categories replay the schedule, day categories sum days_count.
    "leave_categories": {
        "RTT": "rtt",
        "CF": "formation",
        "CA": "annual_leave",
        "Congés payés": "annual_leave",
        "EM": "sick_child",
        "Enfant malade": "sick_child",
    },
    "hour_categories": ["rtt", "formation"],

    # Day-denominated leave: count Sundays in days_count (inclusive span) or not
    "days_count_exclude_sundays": False,

    # Leave types whose explicit time range only blocks the overlapping segments
    "partial_day_leave_types": ["RTT"],

    # "Repeat weekly" propagation
    "propagation": {
        "weeks_per_year": 52,
        "repeated_threshold": 40,  # weeks out of weeks_per_year holding an entry
    },

    "logging": {
        "level": "INFO",
        "format": "%(asctime)s %(levelname)s %(name)s: %(message)s",
    },
}


def configure_logging(config=None) -> None:
    """Apply the logging section of *config* to the root logger."""
    section = (config or CONFIG).get("logging", {}) or {}
    level = section.get("level", "INFO")
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format=section.get("format", CONFIG["logging"]["format"]),
    )
