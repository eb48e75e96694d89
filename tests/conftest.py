from __future__ import annotations

import pytest

from fedsign.keys import SigningKey

# Key used by the signing examples in the Matrix signing appendix.
APPENDIX_SEED = "YJDBA9Xnr2sVqXD9Vj7XVUnmFZcZrlw8Md7kMW+3XA1"
APPENDIX_ENTITY = "domain"
APPENDIX_KEY_ID = "ed25519:1"


@pytest.fixture
def appendix_key() -> SigningKey:
    return SigningKey.from_base64(APPENDIX_ENTITY, APPENDIX_KEY_ID, APPENDIX_SEED)


@pytest.fixture
def key_a() -> SigningKey:
    return SigningKey.generate("a.example", "a_key")


@pytest.fixture
def key_b() -> SigningKey:
    return SigningKey.generate("b.example", "b_key")
