import sys
import os

# Add project root to sys.path so tests can import from all modules
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from hypothesis import settings

from models.data_models import LEFT_EYE, MIN_LANDMARKS, RIGHT_EYE

# CI profile: more examples for thorough testing
settings.register_profile("ci", max_examples=200)
# Dev profile: fewer examples for faster iteration
settings.register_profile("dev", max_examples=100)
# Default to dev profile
settings.load_profile("dev")

OPEN_EAR = 0.30
CLOSED_EAR = 0.10


def build_landmarks(ear, count=MIN_LANDMARKS):
    """生成一帧关键点，双眼的 EAR 均等于给定值（眼宽 0.1，上下眼睑间距 ear/10）。"""
    landmarks = [(0.5, 0.5, 0.0)] * count
    gap = ear / 10.0
    for eye, x0 in ((LEFT_EYE, 0.30), (RIGHT_EYE, 0.60)):
        y = 0.4
        outer, upper_outer, upper_inner, inner, lower_inner, lower_outer = eye.indices
        landmarks[outer] = (x0, y, 0.0)
        landmarks[inner] = (x0 + 0.1, y, 0.0)
        landmarks[upper_outer] = (x0 + 0.03, y - gap / 2, 0.0)
        landmarks[lower_outer] = (x0 + 0.03, y + gap / 2, 0.0)
        landmarks[upper_inner] = (x0 + 0.07, y - gap / 2, 0.0)
        landmarks[lower_inner] = (x0 + 0.07, y + gap / 2, 0.0)
    return landmarks

