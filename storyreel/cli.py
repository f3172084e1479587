"""CLI entrypoint for storyboard generation, narration and video export."""
import argparse
import os
import time
from typing import Any, Optional

import anyio

from .config import StudioConfig, load_config
from .credentials import CredentialPool, load_credentials
from .gemini_client import GeminiBackend
from .models import RenderProgress
from .pipeline import Studio
from .project import load_project, save_project
from .run_logger import RunLogger, make_run_id


def build_studio(args: argparse.Namespace, config: StudioConfig) -> Studio:
    pool = CredentialPool()
    if args.keys:
        keys = load_credentials(args.keys)
        if not keys:
            raise SystemExit(f"no valid keys (prefix 'AIzaSy') found in {args.keys}")
        pool.replace(keys)
    run_dir = os.path.join(config.data_root, "runs", args.run_id or make_run_id())
    logger = RunLogger(run_dir)
    reference = None
    if getattr(args, "reference", None):
        with open(args.reference, "rb") as f:
            reference = f.read()
    return Studio(
        GeminiBackend(config),
        config=config,
        credentials=pool,
        logger=logger,
        reference_image=reference,
    )


def _read_text(args: argparse.Namespace) -> str:
    if args.text_file:
        with open(args.text_file, "r", encoding="utf-8") as f:
            return f.read()
    return args.text or ""


async def run_script(studio: Studio, args: argparse.Namespace) -> None:
    script = await studio.generate_script(args.topic)
    if args.out:
        with open(args.out, "w", encoding="utf-8") as f:
            f.write(script)
        print(args.out)
    else:
        print(script)


async def run_storyboard(studio: Studio, args: argparse.Namespace) -> None:
    text = _read_text(args)
    if not text.strip():
        raise SystemExit("storyboard needs --text or --text-file")
    scenes = await studio.generate_storyboard(text)
    save_project(args.project, scenes, text=text)
    print(f"{args.project} ({len(scenes)} scenes)")


async def run_generate(studio: Studio, args: argparse.Namespace) -> None:
    project = load_project(args.project)
    studio.set_scenes(project["scenes"])
    if not args.skip_images:
        await studio.generate_all_images()
    if not args.skip_audio:
        for index, scene in enumerate(studio.scenes):
            if not scene.audio:
                await studio.generate_scene_audio(index)
    save_project(args.project, studio.scenes, name=project["name"], text=project["text_content"])
    for failure in studio.failures:
        print(f"scene {failure['index'] + 1} {failure['kind']} failed: {failure['error']}")
    print(args.project)


async def run_narrate(studio: Studio, args: argparse.Namespace) -> None:
    text = _read_text(args)
    if not text.strip():
        raise SystemExit("narrate needs --text or --text-file")
    pcm = await studio.generate_narration(text)
    out_path = args.out or f"storyvoice_audio_{int(time.time() * 1000)}.wav"
    with open(out_path, "wb") as f:
        f.write(studio.narration_wav(pcm))
    print(out_path)


def _print_progress(progress: RenderProgress) -> None:
    print(f"[{progress.phase.value}] scene {progress.current_scene_index}/{progress.total_scenes}")


async def run_render(studio: Studio, args: argparse.Namespace) -> None:
    project = load_project(args.project)
    studio.set_scenes(project["scenes"])
    output = await studio.render(on_progress=_print_progress)
    out_dir = os.path.abspath(args.out_dir)
    os.makedirs(out_dir, exist_ok=True)
    out_path = os.path.join(out_dir, f"story_video_{int(time.time() * 1000)}.{output.extension}")
    with open(out_path, "wb") as f:
        f.write(output.data)
    print(out_path)


async def run_export(studio: Studio, args: argparse.Namespace) -> None:
    project = load_project(args.project)
    studio.set_scenes(project["scenes"])
    print(studio.export_assets(args.out))


COMMANDS = {
    "script": run_script,
    "storyboard": run_storyboard,
    "generate": run_generate,
    "narrate": run_narrate,
    "render": run_render,
    "export": run_export,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Narrated storyboard video studio")
    parser.add_argument("--config", default=None, help="YAML config with a 'studio' section")
    parser.add_argument("--keys", default=None, help="Key file, one API key per line")
    parser.add_argument("--run-id", default=None, help="Run directory name under DATA_ROOT/runs")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("script", help="Write a dramatic 'what if' script for a topic")
    p.add_argument("--topic", required=True)
    p.add_argument("--out", default=None)

    p = sub.add_parser("storyboard", help="Split text into scenes and save a project file")
    p.add_argument("--project", required=True)
    p.add_argument("--text", default=None)
    p.add_argument("--text-file", default=None)

    p = sub.add_parser("generate", help="Generate missing scene images and narration")
    p.add_argument("--project", required=True)
    p.add_argument("--reference", default=None, help="Global reference image for character continuity")
    p.add_argument("--skip-images", action="store_true")
    p.add_argument("--skip-audio", action="store_true")

    p = sub.add_parser("narrate", help="Narrate a whole text into one WAV file")
    p.add_argument("--text", default=None)
    p.add_argument("--text-file", default=None)
    p.add_argument("--out", default=None)

    p = sub.add_parser("render", help="Render complete scenes into one video")
    p.add_argument("--project", required=True)
    p.add_argument("--out-dir", default=os.getenv("DATA_ROOT", "data"))

    p = sub.add_parser("export", help="Bundle scene texts, prompts, images and WAVs into a zip")
    p.add_argument("--project", required=True)
    p.add_argument("--out", default="storyboard_assets.zip")
    return parser


def main(argv: Optional[Any] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    config = load_config(args.config)
    studio = build_studio(args, config)
    anyio.run(COMMANDS[args.command], studio, args)


if __name__ == "__main__":
    main()
