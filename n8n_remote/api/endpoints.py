"""n8n public API paths, relative to ``{instance_url}/api/v1``."""
from __future__ import annotations


class Workflows:
    LIST = "/workflows"
    CREATE = "/workflows"

    @staticmethod
    def get(workflow_id: str) -> str:
        return f"/workflows/{workflow_id}"

    update = get
    delete = get

    @staticmethod
    def activate(workflow_id: str) -> str:
        return f"/workflows/{workflow_id}/activate"

    @staticmethod
    def deactivate(workflow_id: str) -> str:
        return f"/workflows/{workflow_id}/deactivate"

    @staticmethod
    def tags(workflow_id: str) -> str:
        return f"/workflows/{workflow_id}/tags"

    @staticmethod
    def transfer(workflow_id: str) -> str:
        return f"/workflows/{workflow_id}/transfer"

    @staticmethod
    def version(workflow_id: str, version_id: str) -> str:
        return f"/workflows/{workflow_id}/{version_id}"


class Executions:
    LIST = "/executions"
    STOP_MANY = "/executions/stop"

    @staticmethod
    def get(execution_id: str) -> str:
        return f"/executions/{execution_id}"

    delete = get

    @staticmethod
    def retry(execution_id: str) -> str:
        return f"/executions/{execution_id}/retry"

    @staticmethod
    def stop(execution_id: str) -> str:
        return f"/executions/{execution_id}/stop"

    @staticmethod
    def tags(execution_id: str) -> str:
        return f"/executions/{execution_id}/tags"


class Credentials:
    LIST = "/credentials"
    CREATE = "/credentials"

    @staticmethod
    def get(credential_id: str) -> str:
        return f"/credentials/{credential_id}"

    update = get
    delete = get

    @staticmethod
    def schema(credential_type: str) -> str:
        return f"/credentials/schema/{credential_type}"

    @staticmethod
    def transfer(credential_id: str) -> str:
        return f"/credentials/{credential_id}/transfer"


class Tags:
    LIST = "/tags"
    CREATE = "/tags"

    @staticmethod
    def get(tag_id: str) -> str:
        return f"/tags/{tag_id}"

    update = get
    delete = get


class Projects:
    LIST = "/projects"
    CREATE = "/projects"

    @staticmethod
    def get(project_id: str) -> str:
        return f"/projects/{project_id}"

    update = get
    delete = get

    @staticmethod
    def users(project_id: str) -> str:
        return f"/projects/{project_id}/users"

    @staticmethod
    def user(project_id: str, user_id: str) -> str:
        return f"/projects/{project_id}/users/{user_id}"


class Users:
    LIST = "/users"
    INVITE = "/users"

    @staticmethod
    def get(user_id: str) -> str:
        return f"/users/{user_id}"

    delete = get

    @staticmethod
    def role(user_id: str) -> str:
        return f"/users/{user_id}/role"


class Variables:
    LIST = "/variables"
    CREATE = "/variables"

    @staticmethod
    def get(variable_id: str) -> str:
        return f"/variables/{variable_id}"

    update = get
    delete = get


class Audit:
    GENERATE = "/audit"


class SourceControl:
    PULL = "/source-control/pull"


class DataTables:
    LIST = "/data-tables"
    CREATE = "/data-tables"

    @staticmethod
    def get(table_id: str) -> str:
        return f"/data-tables/{table_id}"

    update = get
    delete = get

    @staticmethod
    def rows(table_id: str) -> str:
        return f"/data-tables/{table_id}/rows"

    @staticmethod
    def delete_rows(table_id: str) -> str:
        return f"/data-tables/{table_id}/rows/delete"
