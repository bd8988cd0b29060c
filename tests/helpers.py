PASSWORD = "Senha123!"


def register_payload(**overrides):
    payload = {
        "email": "admin@test.local",
        "password": PASSWORD,
        "full_name": "Ana Admin",
        "user_phone": "(11) 98888-7777",
        "company_name": "Pet Pro Test",
        "company_phone": "11 3333-4444",
    }
    payload.update(overrides)
    return payload


def bearer(token):
    return {"Authorization": f"Bearer {token}"}
