"""声音报警模块，使用 pygame mixer 播放提示音"""

import logging

import numpy as np
import pygame

logger = logging.getLogger(__name__)


class ToneAlertSink:
    """生成正弦波提示音并播放；音频设备不可用时静默降级，不影响检测"""

    def __init__(
        self,
        frequency: float = 800.0,
        duration: float = 0.3,
        volume: float = 0.3,
        sample_rate: int = 22050,
    ):
        self.frequency = frequency
        self.duration = duration
        self.volume = volume
        self.sample_rate = sample_rate
        self._sound = None
        self.enabled = False

        try:
            pygame.mixer.init(frequency=sample_rate, size=-16, channels=2, buffer=512)
            self._sound = pygame.sndarray.make_sound(self._create_wave())
            self.enabled = True
        except pygame.error as e:
            logger.warning("音频报警不可用，已禁用声音: %s", e)

    def _create_wave(self) -> np.ndarray:
        """生成双声道 16 位正弦波"""
        n_samples = int(self.sample_rate * self.duration)
        t = np.linspace(0, self.duration, n_samples, False)
        wave = np.sin(2 * np.pi * self.frequency * t) * self.volume
        audio = (wave * 32767).astype(np.int16)
        return np.ascontiguousarray(np.column_stack((audio, audio)))

    def emit(self):
        """播放一次提示音"""
        if not self.enabled:
            logger.debug("音频已禁用，跳过提示音")
            return
        try:
            self._sound.play()
        except pygame.error as e:
            logger.warning("提示音播放失败: %s", e)

    def close(self):
        """释放 mixer"""
        if self.enabled:
            pygame.mixer.quit()
            self.enabled = False
