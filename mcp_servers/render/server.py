"""
Render service: turns project files into stored videos and narration WAVs.
"""
import base64
from typing import Any, Dict, Optional

from mcp_servers.assets.artifact_store import ArtifactStore
from storyreel import audio_codec
from storyreel.compositor import EncoderFactory, render_video
from storyreel.config import StudioConfig, load_config
from storyreel.project import load_project
from storyreel.run_logger import RunLogger


class RenderService:
    def __init__(
        self,
        artifact_root: Optional[str] = None,
        config: Optional[StudioConfig] = None,
        encoder_factory: Optional[EncoderFactory] = None,
        logger: Optional[RunLogger] = None,
    ) -> None:
        self.store = ArtifactStore(root=artifact_root)
        self.config = config or load_config()
        self.encoder_factory = encoder_factory
        self.logger = logger

    async def render_project(self, project_path: str) -> Dict[str, Any]:
        project = load_project(project_path)
        progress: list[Dict[str, Any]] = []
        output = await render_video(
            project["scenes"],
            on_progress=lambda p: progress.append(p.to_dict()),
            config=self.config,
            encoder_factory=self.encoder_factory,
            logger=self.logger,
        )
        artifact_id = self.store.put(data=output.data, content_type=output.content_type, tags=["render", "video"])
        return {
            "artifact_id": artifact_id,
            "content_type": output.content_type,
            "duration_sec": round(output.duration_sec, 3),
            "path": self.store.get_path(artifact_id),
            "progress": progress,
        }

    def narration_wav(self, pcm_b64: str) -> Dict[str, Any]:
        pcm = base64.b64decode(pcm_b64)
        # Rejects misaligned PCM before storing.
        audio_codec.decode(pcm, self.config.sample_rate, self.config.channels)
        wav = audio_codec.encode_wav(pcm, self.config.sample_rate, self.config.channels)
        artifact_id = self.store.put(data=wav, content_type="audio/wav", tags=["narration", "audio"])
        return {
            "artifact_id": artifact_id,
            "duration_sec": round(audio_codec.wav_duration_sec(wav), 3),
            "path": self.store.get_path(artifact_id),
        }

    def scene_wav(self, project_path: str, index: int) -> Dict[str, Any]:
        scenes = load_project(project_path)["scenes"]
        if index < 0 or index >= len(scenes):
            raise ValueError(f"scene index out of range: {index}")
        audio = scenes[index].audio
        if not audio:
            raise ValueError(f"scene {index + 1} has no audio")
        return self.narration_wav(base64.b64encode(audio).decode("ascii"))
