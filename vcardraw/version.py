from enum import Enum


class Version(Enum):
    V2_1 = '2.1'
    V3_0 = '3.0'
    V4_0 = '4.0'

    def __str__(self):
        return self.value

    @classmethod
    def from_string(cls, text):
        text = text.strip()

        for version in cls:
            if version.value == text:
                return version

        return None
