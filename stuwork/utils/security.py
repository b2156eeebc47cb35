from passlib.context import CryptContext

# Passwords are hashed with Argon2
pwd_context = CryptContext(schemes=["argon2"], deprecated="auto")


def verify_password(plain_password, hashed_password):
    """Checks if the typed password matches the saved hash."""
    if not plain_password or not hashed_password:
        return False
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password):
    """Converts a plain password into an Argon2 hash."""
    return pwd_context.hash(password)
