import logging

from environs import Env, EnvError, validate

STATUS_SOURCES = ("battlemetrics", "a2s")


class ConfigurationError(Exception):
    pass


def parse_address(address: str) -> tuple[str, int]:
    """Split a `host:port` string into a query address tuple."""
    host, sep, port = address.rpartition(":")
    if not sep or not host or not port.isdigit():
        raise ConfigurationError(f'Invalid address "{address}", expected "host:port"')
    port = int(port)
    if not 0 < port < 65536:
        raise ConfigurationError(f'Invalid port in address "{address}"')
    return host.strip("[]"), port


class Configuration:
    def __init__(self):
        url_validator = validate.URL(schemes=("http", "https"), require_tld=False)

        env = Env(eager=False)
        env.read_env()

        self.log_level = env.log_level("LOG_LEVEL", logging.INFO)

        # Discord
        self.discord_token = env("DISCORD_TOKEN")
        self.discord_guild_id = env.int("DISCORD_GUILD_ID", None)
        self.status_channel_id = env.int("STATUS_CHANNEL_ID")
        self.error_channel_id = env.int("ERROR_CHANNEL_ID", None)

        # Status source
        self.status_source = env(
            "STATUS_SOURCE",
            "battlemetrics",
            validate=validate.OneOf(STATUS_SOURCES),
        )
        self.battlemetrics_id = env("BATTLEMETRICS_ID", None)
        self.battlemetrics_token = env("BATTLEMETRICS_TOKEN", None)
        self.battlemetrics_url = env(
            "BATTLEMETRICS_URL",
            "https://api.battlemetrics.com",
            validate=url_validator,
        )
        self.a2s_address = env("A2S_ADDRESS", None)

        # Scheduling
        self.poll_interval = env.int(
            "POLL_INTERVAL", 60, validate=validate.Range(min=5)
        )
        self.fetch_timeout = env.float(
            "FETCH_TIMEOUT",
            10.0,
            validate=validate.Range(min=0, max=30, min_inclusive=False),
        )

        try:
            env.seal()
        except EnvError as e:
            raise ConfigurationError(str(e)) from e

        # Source specific requirements can only be checked once the source is known
        if self.status_source == "battlemetrics" and not self.battlemetrics_id:
            raise ConfigurationError(
                'BATTLEMETRICS_ID is required when STATUS_SOURCE is "battlemetrics"'
            )
        if self.status_source == "a2s":
            if not self.a2s_address:
                raise ConfigurationError(
                    'A2S_ADDRESS is required when STATUS_SOURCE is "a2s"'
                )
            self.a2s_address = parse_address(self.a2s_address)
