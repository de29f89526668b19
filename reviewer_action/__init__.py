# SPDX-License-Identifier: MIT OR Apache-2.0
# SPDX-FileCopyrightText: The CR Cab Reviewer Action Contributors
