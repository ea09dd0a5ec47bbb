class EncryptionError(Exception):

    def __init__(self, value=""):
        self.value = "ENCRYPTION ERROR: " + value if value != "" else "ENCRYPTION ERROR"

    def __str__(self):
        return self.value


class DecryptionError(Exception):

    def __init__(self, value=""):
        self.value = "DECRYPTION ERROR: " + value if value != "" else "DECRYPTION ERROR"

    def __str__(self):
        return self.value
