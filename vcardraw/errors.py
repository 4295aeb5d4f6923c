class LineSyntaxError(ValueError):
    def __init__(self, reason, line=None, line_number=None):
        message = reason

        if line_number is not None:
            message = f'{message}, line {line_number}'

        super().__init__(message)
        self.reason = reason
        self.line = line
        self.line_number = line_number


class InvalidVersionError(ValueError):
    def __init__(self, version, line=None, line_number=None):
        self.reason = f'invalid version "{version}"'
        message = self.reason

        if line_number is not None:
            message = f'{message}, line {line_number}'

        super().__init__(message)
        self.version = version
        self.line = line
        self.line_number = line_number


class CharsetDecodeError(ValueError, LookupError):
    def __init__(self, charset):
        super().__init__(f'unknown charset "{charset}"')
        self.charset = charset


class QuotedPrintableDecodeError(ValueError):
    pass
