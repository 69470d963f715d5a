import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.logging import LoggingIntegration


def init_sentry(dsn: str, environment: str = "dev",
                service: str = "reaction_service",
                traces_sample_rate: float = 1.0) -> bool:
    if not dsn:
        return False
    sentry_sdk.init(
        dsn=dsn,
        environment=environment,
        integrations=[
            LoggingIntegration(level=None, event_level=None),
            FastApiIntegration(),
        ],
        traces_sample_rate=traces_sample_rate,
        # IP посетителя: ключ дедупликации реакций, в Sentry не шлём
        send_default_pii=False,
    )
    sentry_sdk.set_tag("service", service)
    return True
