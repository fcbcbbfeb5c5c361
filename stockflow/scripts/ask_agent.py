# ask_agent.py
"""
Send a prompt to a remote agent from the command line.

Usage:
    python -m stockflow.scripts.ask_agent "Summarize AAPL's last quarter"
    python -m stockflow.scripts.ask_agent --agent stock-analyst --background "Compare NVDA and AMD"
"""
import argparse
import logging
import sys

from stockflow.agents.agent_job import AgentJob
from stockflow.agents.response_extraction import extract_final_response
from stockflow.clients.remoteagent_client import PollingTimeout, RemoteAgentClient, RemoteAgentError
from stockflow.config import Config, ConfigurationError


# ----------------------------
# ARGUMENTS
# ----------------------------
def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Ask a remote agent a question")
    parser.add_argument("prompt", help="Prompt text")
    parser.add_argument("--agent", help="Agent name (default: REMOTEAGENT_AGENT_NAME)")
    parser.add_argument("--background", action="store_true", help="Create in background and poll")
    parser.add_argument("--max-wait", type=float, default=None, help="Polling budget in seconds")
    parser.add_argument("--verbose", action="store_true")
    return parser.parse_args(argv)


def print_status(job: AgentJob) -> None:
    print(f"📊 Status: {job.status.value}")


# ----------------------------
# MAIN
# ----------------------------
def main(argv=None) -> int:
    args = parse_args(argv)
    logging.basicConfig(level=logging.INFO if args.verbose else logging.WARNING)

    try:
        client = RemoteAgentClient(Config.remote_agent_config())
    except ConfigurationError as e:
        print(f"❌ {e}")
        return 2

    agent_name = args.agent or client.config.default_agent_name
    print(f"🚀 Asking {agent_name}...")

    try:
        if args.background:
            handle = client.create_response(agent_name, args.prompt, background=True)
            print(f"✅ Created response {handle.id}")
            job = handle if handle.is_terminal else client.poll_response(
                agent_name, handle.id, max_wait_time=args.max_wait, on_status_update=print_status
            )
        else:
            job = client.create_response(agent_name, args.prompt)
    except PollingTimeout as e:
        print(f"⏳ {e.message}")
        return 1
    except RemoteAgentError as e:
        print(f"❌ {e.message}")
        return 1
    except KeyboardInterrupt:
        print("\n⚠️ Cancelled")
        return 130

    print(f"\n{'=' * 80}")
    print(extract_final_response(job))
    print(f"{'=' * 80}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
