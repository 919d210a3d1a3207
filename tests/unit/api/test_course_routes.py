"""Unit tests for course routes."""

import pytest
from fastapi.testclient import TestClient

Headers = dict[str, str]


@pytest.mark.unit
class TestCreateCourse:
    """Tests for POST /api/courses."""

    def test_create(self, client: TestClient, admin_headers: Headers) -> None:
        response = client.post(
            "/api/courses",
            json={
                "courseCode": "CS101",
                "courseName": "Intro to CS",
                "maxStudents": 25,
                "credits": 4,
                "instructor": "Dr. Hopper",
                "semester": "Fall",
                "year": 2025,
            },
            headers=admin_headers,
        )

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["course_code"] == "CS101"
        assert data["max_students"] == 25
        assert data["enrolled_count"] == 0
        assert data["available_seats"] == 25
        assert data["status"] == "active"

    def test_defaults(self, create_course) -> None:
        course = create_course()

        assert course["max_students"] == 30
        assert course["credits"] == 3

    def test_duplicate_code(
        self, client: TestClient, admin_headers: Headers, create_course
    ) -> None:
        create_course(courseCode="CS500")

        response = client.post(
            "/api/courses",
            json={"courseCode": "CS500", "courseName": "Again"},
            headers=admin_headers,
        )

        assert response.status_code == 400
        assert response.json()["code"] == "DUPLICATE_COURSE_CODE"

    @pytest.mark.parametrize(
        ("field", "value"),
        [
            ("maxStudents", 0),
            ("maxStudents", 501),
            ("credits", 11),
            ("year", 2019),
            ("courseName", "AB"),
            ("courseCode", "X"),
        ],
    )
    def test_validation(
        self, client: TestClient, admin_headers: Headers, field: str, value: object
    ) -> None:
        body = {"courseCode": "CS777", "courseName": "Valid Name", field: value}

        response = client.post("/api/courses", json=body, headers=admin_headers)

        assert response.status_code == 400
        assert response.json()["errors"][0]["field"] == field

    def test_requires_admin(self, client: TestClient, create_student) -> None:
        _, headers = create_student()

        response = client.post(
            "/api/courses", json={"courseCode": "CS1", "courseName": "Nope"}, headers=headers
        )

        assert response.status_code == 403


@pytest.mark.unit
class TestListCourses:
    """Tests for GET /api/courses."""

    def test_students_see_active_courses(
        self, client: TestClient, create_student, create_course
    ) -> None:
        create_course(courseCode="AAA100")
        create_course(courseCode="BBB100", status="archived")
        _, headers = create_student()

        response = client.get("/api/courses", headers=headers)

        assert response.status_code == 200
        body = response.json()
        assert [c["course_code"] for c in body["data"]] == ["AAA100"]
        assert body["pagination"]["totalCount"] == 1

    def test_status_all(self, client: TestClient, admin_headers: Headers, create_course) -> None:
        create_course()
        create_course(status="inactive")

        response = client.get("/api/courses?status=all", headers=admin_headers)

        assert response.json()["pagination"]["totalCount"] == 2

    def test_status_filter(
        self, client: TestClient, admin_headers: Headers, create_course
    ) -> None:
        create_course()
        inactive = create_course(status="inactive")

        response = client.get("/api/courses?status=inactive", headers=admin_headers)

        assert [c["id"] for c in response.json()["data"]] == [inactive["id"]]

    def test_invalid_status(self, client: TestClient, admin_headers: Headers) -> None:
        response = client.get("/api/courses?status=bogus", headers=admin_headers)

        assert response.status_code == 400

    def test_filters(self, client: TestClient, admin_headers: Headers, create_course) -> None:
        target = create_course(department="Mathematics", semester="Spring", instructor="Gauss")
        create_course(department="Mathematics", semester="Fall")
        create_course(department="History", semester="Spring")

        response = client.get(
            "/api/courses?department=math&semester=Spring&search=gauss", headers=admin_headers
        )

        assert [c["id"] for c in response.json()["data"]] == [target["id"]]

    def test_default_page_size(
        self, client: TestClient, admin_headers: Headers, create_course
    ) -> None:
        for _ in range(13):
            create_course()

        body = client.get("/api/courses", headers=admin_headers).json()

        assert len(body["data"]) == 12
        assert body["pagination"]["totalPages"] == 2
        assert body["pagination"]["hasNext"] is True

    def test_requires_token(self, client: TestClient) -> None:
        assert client.get("/api/courses").status_code == 401


@pytest.mark.unit
class TestGetCourse:
    """Tests for GET /api/courses/{id}."""

    def test_get(self, client: TestClient, create_student, create_course) -> None:
        course = create_course()
        _, headers = create_student()

        response = client.get(f"/api/courses/{course['id']}", headers=headers)

        assert response.status_code == 200
        assert response.json()["data"]["course_name"] == course["course_name"]

    def test_missing(self, client: TestClient, admin_headers: Headers) -> None:
        response = client.get("/api/courses/9999", headers=admin_headers)

        assert response.status_code == 404
        body = response.json()
        assert body["code"] == "COURSE_NOT_FOUND"
        assert body["message"] == "Course with ID 9999 not found"

    def test_non_numeric_id(self, client: TestClient, admin_headers: Headers) -> None:
        response = client.get("/api/courses/abc", headers=admin_headers)

        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_FAILED"


@pytest.mark.unit
class TestUpdateCourse:
    """Tests for PUT /api/courses/{id}."""

    def test_update(self, client: TestClient, admin_headers: Headers, create_course) -> None:
        course = create_course()

        response = client.put(
            f"/api/courses/{course['id']}",
            json={"courseName": "Renamed Course", "maxStudents": 10},
            headers=admin_headers,
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["course_name"] == "Renamed Course"
        assert data["max_students"] == 10
        assert data["course_code"] == course["course_code"]

    def test_null_clears_optional_field(
        self, client: TestClient, admin_headers: Headers, create_course
    ) -> None:
        course = create_course(instructor="Dr. Old", department="Physics")

        response = client.put(
            f"/api/courses/{course['id']}", json={"instructor": None}, headers=admin_headers
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["instructor"] is None
        assert data["department"] == "Physics"

    def test_null_required_field_rejected(
        self, client: TestClient, admin_headers: Headers, create_course
    ) -> None:
        course = create_course()

        response = client.put(
            f"/api/courses/{course['id']}", json={"credits": None}, headers=admin_headers
        )

        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_FAILED"

    def test_capacity_below_enrollment(
        self, client: TestClient, admin_headers: Headers, create_student, create_course
    ) -> None:
        course = create_course(maxStudents=5)
        for _ in range(2):
            _, headers = create_student()
            client.post("/api/registrations", json={"courseId": course["id"]}, headers=headers)

        response = client.put(
            f"/api/courses/{course['id']}", json={"maxStudents": 1}, headers=admin_headers
        )

        assert response.status_code == 400
        assert response.json()["code"] == "CAPACITY_BELOW_ENROLLMENT"


@pytest.mark.unit
class TestDeleteCourse:
    """Tests for DELETE /api/courses/{id}."""

    def test_delete(self, client: TestClient, admin_headers: Headers, create_course) -> None:
        course = create_course()

        response = client.delete(f"/api/courses/{course['id']}", headers=admin_headers)

        assert response.status_code == 200
        assert client.get(f"/api/courses/{course['id']}", headers=admin_headers).status_code == 404

    def test_refuses_with_enrollments(
        self, client: TestClient, admin_headers: Headers, create_student, create_course
    ) -> None:
        course = create_course()
        _, headers = create_student()
        client.post("/api/registrations", json={"courseId": course["id"]}, headers=headers)

        response = client.delete(f"/api/courses/{course['id']}", headers=admin_headers)

        assert response.status_code == 400
        body = response.json()
        assert body["code"] == "COURSE_HAS_ENROLLMENTS"
        assert body["message"] == "Cannot delete course. 1 students are currently enrolled."


@pytest.mark.unit
class TestCourseRoster:
    """Tests for GET /api/courses/{id}/registrations."""

    def test_roster(
        self, client: TestClient, admin_headers: Headers, create_student, create_course
    ) -> None:
        course = create_course()
        student, headers = create_student()
        client.post("/api/registrations", json={"courseId": course["id"]}, headers=headers)

        response = client.get(f"/api/courses/{course['id']}/registrations", headers=admin_headers)

        assert response.status_code == 200
        roster = response.json()["data"]
        assert len(roster) == 1
        assert roster[0]["student"]["student_id"] == student["student_id"]

    def test_roster_requires_admin(
        self, client: TestClient, create_student, create_course
    ) -> None:
        course = create_course()
        _, headers = create_student()

        response = client.get(f"/api/courses/{course['id']}/registrations", headers=headers)

        assert response.status_code == 403
