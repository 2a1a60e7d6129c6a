class PspToolsError(RuntimeError):
    pass


class MissingSectionError(PspToolsError):
    def __init__(self, name: str):
        super().__init__(f'Could not find {name} section.')
        self.name = name


class MalformedRegionError(PspToolsError):
    pass


class DecodeError(PspToolsError):
    pass


class IoError(PspToolsError):
    def __init__(self, path: str, reason: str):
        super().__init__(f'{path}: {reason}')
        self.path = path
        self.reason = reason


class SfoParameterError(PspToolsError):
    pass


class ConfigError(PspToolsError):
    pass
