"""
Data Seeder for HabitFlow.
Populates the configured backend with demo habits, entries and tasks for one user.
"""

import asyncio
import random
import sys
from datetime import date, datetime, timedelta
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from habitflow.domain.models import Habit, HabitEntry, SubTask, Task
from habitflow.infra.backend import UnconfiguredBackend, create_backend
from habitflow.infra.config import get_settings
from habitflow.infra.identity import Identity, LocalIdentityProvider
from habitflow.services import AppStore, SyncService

HABITS = [
    ("Morning Run", "Fitness", "#10B981", 0.8),
    ("Read 20 Pages", "Learning", "#8B5CF6", 0.6),
    ("Meditate", "Wellness", "#06B6D4", 0.9),
    ("Practice Guitar", "Hobbies", "#F59E0B", 0.4),
]

TASKS = [
    ("Renew passport", "Personal", "high", 3),
    ("Quarterly budget review", "Finance", "medium", 10),
    ("Clean up photo library", "Personal", "low", None),
]


async def seed():
    settings = get_settings()
    backend = create_backend(settings)
    if isinstance(backend, UnconfiguredBackend):
        print(f"ERROR: backend not configured, missing: {', '.join(backend.missing)}")
        sys.exit(1)

    user_id = settings.user_id or "demo-user"
    await backend.engine.create_tables()

    store = AppStore()
    sync = SyncService(store, LocalIdentityProvider(Identity(user_id=user_id)), backend)
    await sync.start()
    print(f"Seeding data for user: {user_id}")

    today = date.today()
    existing = {h.name for h in store.state.habit_list()}

    # 1. Habits with roughly 60 days of history
    for name, category, color, hit_rate in HABITS:
        if name in existing:
            print(f"Habit exists: {name}")
            continue
        habit = await sync.add_habit(Habit(name=name, category=category, color=color))
        print(f"Created habit: {name}")

        for offset in range(60, -1, -1):
            if random.random() > hit_rate:
                continue
            await sync.add_habit_entry(HabitEntry(
                habit_id=habit.id,
                date=today - timedelta(days=offset),
                count=random.randint(1, 3),
            ))

    # 2. Tasks, some with subtasks
    for title, category, priority, due_in in TASKS:
        due = datetime.combine(today + timedelta(days=due_in), datetime.min.time()) if due_in else None
        await sync.add_task(Task(
            title=title,
            category=category,
            priority=priority,
            due_date=due,
            subtasks=[SubTask(title="Collect documents"), SubTask(title="Book appointment")]
            if priority == "high" else [],
        ))
        print(f"Created task: {title}")

    await sync.close()
    await backend.close()
    print("Seeding complete.")


if __name__ == "__main__":
    asyncio.run(seed())
