"""PairUp 活动采集 Worker"""
