"""报警触发策略：每次进入困倦状态只报警一次"""


class AlertLatch:
    """
    困倦报警的边沿检测器。

    is_drowsy 由 False 变为 True 的那一帧返回 True，持续困倦期间不再重复触发，
    至少出现一帧 is_drowsy=False 后才重新武装。
    """

    def __init__(self):
        self._previous = False
        self.fired_count = 0

    def update(self, is_drowsy: bool) -> bool:
        """输入当前帧的困倦标志，返回本帧是否应触发报警"""
        should_fire = is_drowsy and not self._previous
        self._previous = is_drowsy
        if should_fire:
            self.fired_count += 1
        return should_fire

    def reset(self):
        """重新武装并清零触发次数"""
        self._previous = False
        self.fired_count = 0
