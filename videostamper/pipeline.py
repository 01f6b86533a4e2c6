"""動画ごとのスタンプ処理と出力モードを統括するパイプライン実装。"""

import subprocess
import tempfile
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from tqdm import tqdm

from .components.config import InputSettings, ProjectSettings, load_project
from .components.overlay import build_filter_for_input
from .exceptions import PipelineError, VideoStamperError
from .utils.ffmpeg_locator import get_ffmpeg_path, get_ffprobe_path
from .utils.ffmpeg_ops import (
    SUPPORTED_FORMATS,
    concat_videos_copy,
    finalize_clip,
    stamp_clip,
)
from .utils.ffmpeg_probe import get_video_metadata
from .utils.logger import KVLogger, logger, time_log

StampedClip = Tuple[InputSettings, Path, Path]  # (settings, source path, temp stamped mp4)


def _log_event(message: str, **kv_pairs) -> None:
    if isinstance(logger, KVLogger):
        logger.kv_info(message, kv_pairs=kv_pairs)
    else:
        logger.info(message)


@dataclass
class ProcessResult:
    success: bool
    message: str
    outputs: List[str] = field(default_factory=list)


class StampPipeline:
    """入力動画へ drawtext を焼き込み、separate/concat の各モードで書き出す。"""

    def __init__(
        self,
        settings: ProjectSettings,
        project_path: Optional[str] = None,
        ffmpeg_path: Optional[str] = None,
        ffprobe_path: Optional[str] = None,
    ):
        self.settings = settings
        self.project_path = Path(project_path) if project_path else None
        self._ffmpeg_path = ffmpeg_path
        self._ffprobe_path = ffprobe_path
        self.stats: Dict[str, Any] = {"phases": {}, "clips": 0}

    @property
    def ffmpeg_path(self) -> str:
        if self._ffmpeg_path is None:
            self._ffmpeg_path = get_ffmpeg_path()
        return self._ffmpeg_path

    @property
    def ffprobe_path(self) -> str:
        if self._ffprobe_path is None:
            self._ffprobe_path = get_ffprobe_path()
        return self._ffprobe_path

    def resolve_input_path(self, raw_path: str) -> Path:
        """Relative input paths are taken from the project file's directory."""
        path = Path(raw_path).expanduser()
        if not path.is_absolute() and self.project_path is not None:
            path = self.project_path.resolve().parent / path
        return path

    async def _run_phase(self, phase_name: str, func, *args, **kwargs):
        """各フェーズを実行し処理時間を stats に記録する。"""
        _log_event(f"--- Starting Phase: {phase_name} ---", Event="PhaseStart", Phase=phase_name)
        start_time = time.time()
        result = await func(*args, **kwargs)
        duration = time.time() - start_time
        self.stats["phases"][phase_name] = {"duration": duration}
        _log_event(
            f"--- Finished Phase: {phase_name} in {duration:.2f}s ---",
            Event="PhaseFinish",
            Phase=phase_name,
            Duration=f"{duration:.2f}s",
        )
        return result

    async def _stamp_inputs(self, temp_dir: Path) -> List[StampedClip]:
        """Each input becomes an intermediate mp4 inside ``temp_dir``."""
        stamped: List[StampedClip] = []
        inputs = self.settings.inputs
        for idx, input_settings in enumerate(
            tqdm(inputs, desc="Stamping clips", unit="clip", disable=len(inputs) < 2)
        ):
            source = self.resolve_input_path(input_settings.path)
            if not input_settings.path or not source.is_file():
                raise PipelineError(f"Input file not found: {input_settings.path}")

            logger.info(f"Processing {source}")
            meta = await get_video_metadata(str(source), self.ffprobe_path)
            filter_chain = build_filter_for_input(input_settings, meta)
            logger.debug(f"FFmpeg filter = {filter_chain}")

            temp_out = temp_dir / f"{idx:03d}_{source.stem}.stamped.mp4"
            await stamp_clip(str(source), filter_chain, str(temp_out), self.ffmpeg_path)
            logger.info(f"Finished stamping {source} -> {temp_out}")
            stamped.append((input_settings, source, temp_out))
        return stamped

    def concat_output_path(self, stamped: List[StampedClip]) -> Path:
        ext = self.settings.output.extension
        if self.project_path is not None:
            return self.project_path.resolve().parent / (self.project_path.stem + ext)
        first_source = stamped[0][1]
        return first_source.parent / (first_source.stem + ext)

    @staticmethod
    def separate_output_path(source: Path, ext: str) -> Path:
        return source.parent / f"{source.stem}-stamped{ext}"

    async def _write_concat(self, stamped: List[StampedClip], temp_dir: Path) -> List[str]:
        if not stamped:
            raise PipelineError("No stamped clips produced.")
        final_out = self.concat_output_path(stamped)

        if len(stamped) == 1:
            joined = stamped[0][2]
        else:
            joined = temp_dir / "concat_temp.mp4"
            await concat_videos_copy(
                [str(clip) for _, _, clip in stamped], str(joined), self.ffmpeg_path
            )

        await finalize_clip(joined, final_out, self.settings.output.format, self.ffmpeg_path)
        return [str(final_out)]

    async def _write_separate(self, stamped: List[StampedClip]) -> List[str]:
        outputs: List[str] = []
        ext = self.settings.output.extension
        for _, source, clip in stamped:
            final_out = self.separate_output_path(source, ext)
            await finalize_clip(clip, final_out, self.settings.output.format, self.ffmpeg_path)
            outputs.append(str(final_out))
        return outputs

    @time_log(logger)
    async def run(self) -> ProcessResult:
        """全入力をスタンプし、出力モードに従って書き出す。

        ffmpeg/ffprobe の失敗や入力不備は ``success=False`` の結果として返す。
        """
        if not self.settings.inputs:
            return ProcessResult(False, "No inputs defined in project.")
        fmt = self.settings.output.format.lower()
        if fmt not in SUPPORTED_FORMATS:
            return ProcessResult(False, f"Unsupported output format: {fmt}")

        logger.info(f"{len(self.settings.inputs)} videos to process")
        try:
            with tempfile.TemporaryDirectory(prefix="videostamper-") as temp_dir_str:
                temp_dir = Path(temp_dir_str)
                logger.debug(f"Using temporary directory: {temp_dir}")

                stamped = await self._run_phase("Stamp", self._stamp_inputs, temp_dir)
                self.stats["clips"] = len(stamped)

                if self.settings.output.is_concat:
                    outputs = await self._run_phase(
                        "Concat", self._write_concat, stamped, temp_dir
                    )
                    message = f"Processed {len(stamped)} clip(s) into {outputs[0]}."
                else:
                    outputs = await self._run_phase("Output", self._write_separate, stamped)
                    message = f"Processed {len(outputs)} file(s)."
        except VideoStamperError as e:
            logger.error(e.message)
            return ProcessResult(False, e.message)
        except subprocess.CalledProcessError as e:
            message = f"ffmpeg failed with exit code {e.returncode}."
            logger.error(message)
            return ProcessResult(False, message)
        except subprocess.TimeoutExpired as e:
            message = f"ffmpeg timed out after {e.timeout:.1f}s."
            logger.error(message)
            return ProcessResult(False, message)

        _log_event(message, Event="StampSuccess", Outputs=len(outputs))
        return ProcessResult(True, message, outputs)


async def run_project(project_path: str) -> ProcessResult:
    """プロジェクトファイルを読み込み、パイプラインを実行する。

    設定不備は ``ValidationError`` として呼び出し元へ伝播する。
    """
    settings = load_project(project_path)
    pipeline = StampPipeline(settings, project_path=project_path)
    return await pipeline.run()
