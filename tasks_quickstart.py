"""
Example: list a user's open tasks as a tree, then poll for changes.

Prerequisites:
1. Create a Google Cloud Project and enable the Tasks API
2. Create OAuth 2.0 credentials (Desktop application type)
3. Download the credentials as 'credentials.json' (or set GOOGLE_CREDENTIALS_PATH)

Usage:
    python tasks_quickstart.py
"""

import logging
import os
import time

from src.google_tasks_client.auth.auth import TasksAuth
from src.google_tasks_client.config import TasksConfig
from src.google_tasks_client.services.tasks import TaskQuery
from src.google_tasks_client.user_client import UserClient


def print_tree(tasks, depth=0):
    for task in tasks:
        marker = "x" if task.is_completed() else " "
        print(f"{'    ' * depth}[{marker}] {task.title}")
        print_tree(task.children, depth + 1)


def main():
    logging.basicConfig(level=logging.INFO)
    config = TasksConfig.from_env()
    auth = TasksAuth.from_config(config)

    if os.path.exists(config.token_path):
        with open(config.token_path, 'r') as f:
            token_blob = f.read()
    else:
        token_blob = auth.authorize_local(port=8080)
        with open(config.token_path, 'w') as f:
            f.write(token_blob)

    user = UserClient.from_token(auth, token_blob)

    task_lists = user.tasks.list_task_lists()
    for task_list in task_lists:
        print(f"{task_list.title} (updated {task_list.updated})")

    query = TaskQuery(filter="needsAction", sort="position")
    collection = user.tasks.list_tasks(query)
    print_tree(collection.items)
    if collection.orphan_ids:
        print(f"{len(collection.orphan_ids)} subtask(s) shown at top level because their parent is hidden")

    print("Polling for changes, Ctrl+C to stop")
    try:
        while True:
            time.sleep(30)
            if user.tasks.refresh_tasks(collection):
                print("List changed:")
                print_tree(collection.items)
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
