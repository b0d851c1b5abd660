import secrets

LOWERCASE = "abcdefghijklmnopqrstuvwxyz"
UPPERCASE = "ABCDEFGHIJKLMNOPQRSTUVWXYZ"
SYMBOLS = "!@#$%^&*()_+[]{}|;:,.<>?"
DIGITS = "0123456789"

_random = secrets.SystemRandom()


def generate_random_password(length: int = 8) -> str:
    """Placeholder credential for freshly provisioned users.

    Contains at least one character of each class. Never shown to anyone; the
    legacy password replaces it on the first successful login.
    """
    classes = (LOWERCASE, UPPERCASE, SYMBOLS, DIGITS)
    if length < len(classes):
        raise ValueError(f"password length must be at least {len(classes)}")

    alphabet = "".join(classes)
    chars = [secrets.choice(charset) for charset in classes]
    chars.extend(secrets.choice(alphabet) for _ in range(length - len(chars)))
    _random.shuffle(chars)
    return "".join(chars)
