class SingScoreError(Exception):
    pass


class ConfigError(SingScoreError, ValueError):
    pass


class ReferenceAssetError(SingScoreError):
    pass
