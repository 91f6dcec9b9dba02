import os
import yaml

ROOT_PATH = os.path.dirname(__file__)
CONFIG_FILE_PATH = os.path.join(ROOT_PATH, "env.yaml")

if os.path.exists(CONFIG_FILE_PATH):
    with open(CONFIG_FILE_PATH, "r") as r_file:
        data = yaml.safe_load(r_file) or dict()
else:
    data = dict()


class ApplicationConfig:
    DB_URI = data.get("DB_URI", "sqlite+aiosqlite:///./credits.db")
    LOG_LEVEL = data.get("LOG_LEVEL", "INFO")
    IS_DEV = bool(data.get("IS_DEV", False))

    # Pricing
    DEFAULT_OPERATION_COST = data.get("DEFAULT_OPERATION_COST", 2)  # Used when a price config is missing
    PRICING_PARAM_ALIASES = data.get(
        "PRICING_PARAM_ALIASES",
        {
            "quality": "{value}_image",
            "numSamples": "extra_sample",
            "num_samples": "extra_sample",
        },
    )

    # Credits granted per purchased product
    CREDIT_PLANS = data.get(
        "CREDIT_PLANS",
        {
            "pdt_EPApEZiWdChI8C5MtLNwJ": 60,
            "pdt_GQ8yH98j1AsI3mG2u4bOQ": 160,
            "pdt_BA3N52wCAWroEoky8HwNz": 320,
            "pdt_LAvfGR7qU7Xkf83fDmYxd": 60,
            "pdt_2v8W0s7zDPsU3GkrhFMEI": 160,
            "pdt_fPXoHnNr9AYemVwqOS8Tq": 320,
            "pdt_njNQLgxzfhm5NR1xDQUPc": 10,
        },
    )

    # Ad generation
    GENERATION_QUALITY = data.get("GENERATION_QUALITY", "medium")
    DEV_GENERATION_QUALITY = data.get("DEV_GENERATION_QUALITY", "low")

    # Ledger Reconciliation Configuration
    RECONCILIATION_ENABLED = bool(data.get("RECONCILIATION_ENABLED", True))
    RECONCILIATION_INTERVAL_SECONDS = data.get("RECONCILIATION_INTERVAL_SECONDS", 86400)  # Daily
    PENDING_TRANSACTION_GRACE_SECONDS = data.get("PENDING_TRANSACTION_GRACE_SECONDS", 300)
    RECONCILIATION_NOTIFICATION_WEBHOOK = data.get("RECONCILIATION_NOTIFICATION_WEBHOOK", None)
