from fastapi.testclient import TestClient

PASSWORD = "correct-horse"


def login(client: TestClient, username: str, password: str = PASSWORD):
    response = client.post(
        "/auth/login", json={"usernameOrEmail": username, "password": password}
    )
    assert response.status_code == 200, response.text
    return response
