"""
Example: TaskRunner against a local Ollama server.

The host here is an in-memory sign-up form, so the example runs without a
browser. Swap `FormHost` for a real HostSession implementation to drive a live
page.

Requirements:
1. Ollama running locally: https://ollama.com
2. A pulled model, e.g. `ollama pull llama3.1`
3. Optional .env with OLLAMA_HOST and TASKPILOT_MODEL
"""

import asyncio
import logging
import os

from dotenv import load_dotenv

from taskpilot import ChatOllama, HostActionError, HostSession, TaskRunner, TaskRunnerSettings

load_dotenv()

logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")


def log(msg: str) -> None:
    """Print with flush for immediate output."""
    print(msg, flush=True)


class FormHost(HostSession):
    """A two-field sign-up form held in memory."""

    def __init__(self):
        self.values = {1: '', 2: ''}
        self.submitted = False

    async def attach(self) -> int:
        log("🔌 Attached to in-memory form")
        return 1

    async def detach(self, target_id) -> None:
        log(f"🔌 Detached from target {target_id}")

    async def pull_snapshot(self) -> str:
        if self.submitted:
            return '<div><p>Thanks for signing up!</p></div>'
        return (
            '<form>'
            f'<input id="1" placeholder="Email" value="{self.values[1]}">'
            f'<input id="2" placeholder="Name" value="{self.values[2]}">'
            '<button id="3">Sign up</button>'
            '</form>'
        )

    async def act(self, kind: str, args: dict) -> None:
        element_id = args['elementId']
        if kind == 'setValue' and element_id in self.values:
            self.values[element_id] = args['value']
        elif kind == 'click' and element_id == 3:
            self.submitted = all(self.values.values())
        else:
            raise HostActionError(f"Cannot {kind} element {element_id}")


async def main():
    host = FormHost()
    llm = ChatOllama(host=os.getenv("OLLAMA_HOST", "http://localhost:11434"), temperature=0.2)
    settings = TaskRunnerSettings(
        model=os.getenv("TASKPILOT_MODEL", "llama3.1"),
        max_history=10,
        settle_delay_s=0.5,
    )
    runner = TaskRunner(host, llm, settings)

    async def stop_when_submitted():
        while runner.state.status in ('idle', 'running'):
            if host.submitted:
                runner.interrupt()
                return
            await asyncio.sleep(0.2)

    watcher = asyncio.create_task(stop_when_submitted())
    state = await runner.run_task(
        "Sign up with the email jane@example.com and the name Jane",
        on_error=lambda message: log(f"⚠️  {message}"),
    )
    watcher.cancel()

    log(f"\nStatus: {state.status}, turns: {len(state.history)}")
    for i, entry in enumerate(state.history, start=1):
        log(f"  {i}. {entry.title} ({entry.usage.total_tokens} tokens)")
    log(f"Form submitted: {host.submitted}")


if __name__ == "__main__":
    asyncio.run(main())
