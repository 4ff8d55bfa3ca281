"""Example: fetch the current story list and print it as a numbered list."""

import asyncio
import os

from src.stories import fetch_current_stories
from src.utils.logging_config import setup_logging

os.environ.setdefault("LOG_LEVEL", "INFO")

setup_logging(use_json=False)

stories = asyncio.run(fetch_current_stories())

print("Stories")
for number, story in enumerate(stories, start=1):
    print(f"{number}. {story.title}")
    print(f"   {story.url}")
