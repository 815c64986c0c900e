from dataclasses import dataclass, field


@dataclass(frozen=True)
class RunConfiguration:
    command: tuple[str, ...]
    concurrency: int = 1
    total_tasks: int | None = None
    timeout_s: float | None = None
    stop_on_fail: bool = False
    quiet: bool = False
    launch_delay_s: float = 0.1
    env: dict[str, str] = field(default_factory=dict)
    working_dir: str | None = None

    @property
    def unbounded(self) -> bool:
        return self.total_tasks is None

    def initial_burst(self) -> int:
        if self.total_tasks is None:
            return self.concurrency
        return min(self.concurrency, self.total_tasks)

    def command_line(self) -> str:
        return " ".join(self.command)


class ConfigError(Exception):
    def __init__(self, *args: object) -> None:
        super().__init__(*args)


class UnsupportedConfigFormatError(ConfigError):
    def __init__(self, *args: object) -> None:
        super().__init__(*args)


def validate_configuration(config: RunConfiguration) -> RunConfiguration:
    if len(config.command) < 1 or not config.command[0].strip():
        raise ConfigError("No command provided to execute")

    for arg in config.command:
        if "\x00" in arg:
            raise ConfigError(f"Command argument contains a NUL byte: {arg!r}")

    for key, value in config.env.items():
        if not key or "=" in key or "\x00" in key:
            raise ConfigError(f"Invalid environment variable name: {key!r}")
        if "\x00" in value:
            raise ConfigError(f"Environment variable {key} contains a NUL byte")

    if config.working_dir is not None and "\x00" in config.working_dir:
        raise ConfigError(f"working_dir contains a NUL byte: {config.working_dir!r}")

    if isinstance(config.concurrency, bool)or not isinstance(config.concurrency, int):
        raise ConfigError(f"concurrency must be an integer, got {type(config.concurrency)}")

    if config.concurrency < 1:
        raise ConfigError(f"concurrency must be >= 1, got {config.concurrency}")

    if config.total_tasks is not None and config.total_tasks < 0:
        raise ConfigError(f"total_tasks must be >= 0, got {config.total_tasks}")

    if config.timeout_s is not None and config.timeout_s <= 0:
        raise ConfigError(f"timeout must be > 0 when provided, got {config.timeout_s}")

    if config.launch_delay_s < 0:
        raise ConfigError(f"launch delay can't be negative, got {config.launch_delay_s}")

    return config
