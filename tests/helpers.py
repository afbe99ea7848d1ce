# tests/helpers.py
# Request helpers shared by the API tests

from httpx import AsyncClient


async def register_and_login(client: AsyncClient, email: str, username: str, password: str = "Passw0rd123") -> dict:
    """Create an account and return bearer headers for it"""
    response = await client.post(
        "/auth/register",
        json={"email": email, "username": username, "password": password},
    )
    assert response.status_code == 201, response.text

    response = await client.post("/auth/login", json={"email": email, "password": password})
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['access_token']}"}
