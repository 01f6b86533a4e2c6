from typing import Optional


class VideoStamperError(Exception):
    """videostamper が送出する例外の基底クラス。"""

    label = "Error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __str__(self):
        return f"{self.label}: {self.message}"


class ValidationError(VideoStamperError):
    """プロジェクト設定のバリデーションエラー。YAML の構文エラーは行・列を持つ。"""

    label = "Validation Error"

    def __init__(
        self,
        message: str,
        line_number: Optional[int] = None,
        column_number: Optional[int] = None,
    ):
        super().__init__(message)
        self.line_number = line_number
        self.column_number = column_number

    def __str__(self):
        if self.line_number is None:
            return super().__str__()
        return f"{super().__str__()} (Line: {self.line_number}, Column: {self.column_number})"


class PipelineError(VideoStamperError):
    """入力欠落・未対応フォーマットなど、スタンプ処理中の失敗。"""

    label = "Pipeline Error"


class DependencyError(VideoStamperError):
    """ffmpeg/ffprobe が見つからない。"""

    label = "Dependency Error"


class ProbeError(VideoStamperError):
    """ffprobe の出力を解釈できない。"""

    label = "Probe Error"
