"""daylit - daily planner."""
