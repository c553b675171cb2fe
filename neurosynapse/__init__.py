"""
NeuroSynapse-PD Screening Core

Signal feature extraction and scoring for Parkinson's disease motor-sign
screening (voice, tremor, gait, facial, spiral, tapping, questionnaire).
"""
__version__ = "0.1.0"
