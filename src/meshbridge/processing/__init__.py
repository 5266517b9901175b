# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Ingestion pipeline.
Extracts readings from radio frames, buffers them and flushes on idle.
"""
