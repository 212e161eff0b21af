"""Command line interface: ``vauban-ai``"""

import argparse
import asyncio
import getpass
import sys
from pathlib import Path

from .actions import AIAction, parse_tag_suggestions, parse_title_suggestions
from .config import configure_logging
from .credentials import get_credential_manager
from .errors import AIError
from .images import BLOB_URL_PREFIX
from .orchestrator import AIOrchestrator, AIRequestOptions, ImageGenerationOptions
from .providers import (
    IMAGE_PROVIDERS,
    TEXT_PROVIDERS,
    ImageProvider,
    TextProvider,
    is_provider_available,
)


def configure_credentials_interactive() -> None:
    """Interactive CLI for configuring API credentials"""
    print("\nVauban AI Credential Configuration\n")
    print("=" * 50)

    manager = get_credential_manager()
    descriptors = [*TEXT_PROVIDERS.values(), *IMAGE_PROVIDERS.values()]

    for descriptor in descriptors:
        if not descriptor.requires_api_key:
            continue

        env_var = descriptor.api_key_env_var
        status = "configured" if manager.get_credential(env_var) else "not set"
        print(f"\n{descriptor.name} ({env_var}): [{status}]")

        response = input(f"Configure {descriptor.key}? (y/N/clear): ").strip().lower()

        if response == "clear":
            manager.delete_credential(env_var)
            print(f"  -> Cleared {descriptor.key} credentials")
        elif response == "y":
            api_key = getpass.getpass(f"  Enter API key for {descriptor.key}: ")
            if api_key:
                if manager.set_credential(env_var, api_key):
                    print(f"  -> Saved {descriptor.key} credentials securely")
                else:
                    print(f"  -> Failed to save {descriptor.key} credentials")

    print("\n" + "=" * 50)
    print("Configuration complete!")
    print(f"Configured credentials: {manager.list_configured()}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="vauban-ai", description="Multi-provider AI text and image generation"
    )
    parser.add_argument("prompt", nargs="?", help="Prompt, or the text an --action works on")
    parser.add_argument(
        "--action",
        "-a",
        choices=[action.value for action in AIAction],
        help="Run an editorial action on the text",
    )
    parser.add_argument("--provider", "-p", help="Pin a provider (disables fallback)")
    parser.add_argument("--model", "-m", help="Override model selection")
    parser.add_argument("--image", action="store_true", help="Generate an image from the prompt")
    parser.add_argument(
        "--cover-title", help="Generate a cover image for an article; the prompt is its body"
    )
    parser.add_argument("--output", "-o", type=Path, help="Write generated image bytes here")
    parser.add_argument("--list-providers", action="store_true", help="List providers")
    parser.add_argument(
        "--list-local-models", action="store_true", help="List LocalAI models and install status"
    )
    parser.add_argument(
        "--test-connection", action="store_true", help="Probe every text provider"
    )
    parser.add_argument("--configure", action="store_true", help="Configure API keys")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output")
    return parser


def print_providers() -> None:
    print("\nText Providers:")
    print("=" * 60)
    for provider, descriptor in TEXT_PROVIDERS.items():
        status = "available" if is_provider_available(provider) else "no key"
        print(f"\n{provider.value}: [{status}]")
        print(f"  Name: {descriptor.name}")
        print(f"  Models: {', '.join(descriptor.models)}")
        if descriptor.requires_api_key:
            print(f"  Key: {descriptor.api_key_env_var}")
        print(f"  Latency: {descriptor.latency}  Free tier: {descriptor.free_tier}")

    print("\nImage Providers:")
    print("=" * 60)
    for provider, descriptor in IMAGE_PROVIDERS.items():
        status = "available" if is_provider_available(provider) else "no key"
        print(f"\n{provider.value}: [{status}]")
        print(f"  Name: {descriptor.name}")
        print(f"  Models: {', '.join(descriptor.models)}")
        print(f"  Key: {descriptor.api_key_env_var}")


async def print_local_models(orchestrator: AIOrchestrator) -> None:
    print("\nLocalAI Models:")
    print("=" * 60)
    for status in await orchestrator.list_local_models(force_refresh=True):
        mark = "installed" if status.installed else "not installed"
        print(f"  {status.id:<16} {status.info.name:<16} {status.info.size:>8}  [{mark}]")


async def print_connection_tests(orchestrator: AIOrchestrator) -> None:
    print("\nConnection Tests:")
    print("=" * 60)
    for provider in TextProvider:
        report = await orchestrator.test_provider_connection(provider)
        if report.connected:
            print(f"  {provider.value:<12} ok ({report.latency_ms:.0f}ms)")
        else:
            print(f"  {provider.value:<12} failed: {report.error}")


def save_image(orchestrator: AIOrchestrator, url: str, output: Path) -> bool:
    if not url.startswith(BLOB_URL_PREFIX):
        print(f"Image is hosted remotely, not writing {output}: {url}")
        return False

    blob = orchestrator.object_urls.resolve(url)
    if blob is None:
        print(f"Image data for {url} is no longer available")
        return False

    output.write_bytes(blob.data)
    orchestrator.object_urls.revoke(url)
    print(f"Wrote {len(blob.data)} bytes ({blob.content_type}) to {output}")
    return True


async def main(argv: list[str] | None = None) -> int:
    """CLI entry point; returns the process exit code"""
    parser = build_parser()
    args = parser.parse_args(argv)

    configure_logging(verbose=args.verbose)

    if args.configure:
        configure_credentials_interactive()
        return 0

    if args.list_providers:
        print_providers()
        return 0

    async with AIOrchestrator() as orchestrator:
        if args.list_local_models:
            await print_local_models(orchestrator)
            return 0

        if args.test_connection:
            await print_connection_tests(orchestrator)
            return 0

        if not args.prompt:
            parser.print_help()
            return 1

        if args.image or args.cover_title:
            if args.provider and args.provider not in {p.value for p in ImageProvider}:
                parser.error(f"unknown image provider: {args.provider}")
            image_options = ImageGenerationOptions(provider=args.provider, model=args.model)
            if args.cover_title:
                response = await orchestrator.generate_cover_image(
                    args.cover_title, args.prompt, image_options
                )
            else:
                response = await orchestrator.generate_image(args.prompt, image_options)
        else:
            if args.provider and args.provider not in {p.value for p in TextProvider}:
                parser.error(f"unknown text provider: {args.provider}")
            text_options = AIRequestOptions(provider=args.provider, model=args.model)
            if args.action:
                response = await orchestrator.perform_ai_action(
                    args.action, args.prompt, text_options
                )
            else:
                response = await orchestrator.custom_prompt(args.prompt, options=text_options)

        if isinstance(response, AIError):
            print(f"\nError [{response.code.value}]: {response.error}")
            return 1

        latency = f" ({response.latency_ms:.0f}ms)" if response.latency_ms is not None else ""
        print(f"\n[{response.provider}/{response.model}]{latency}")
        print("-" * 60)

        if args.action == AIAction.SUGGEST_TITLE.value:
            for title in parse_title_suggestions(response.data):
                print(f"- {title}")
        elif args.action == AIAction.SUGGEST_TAGS.value:
            print(", ".join(parse_tag_suggestions(response.data)))
        else:
            print(response.data)
        print("-" * 60)

        if args.output and (args.image or args.cover_title):
            save_image(orchestrator, response.data, args.output)

    return 0


def run() -> None:
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    run()
