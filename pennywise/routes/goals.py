"""Savings goal routes."""

from flask import Blueprint, jsonify

from pennywise.core import get_json_body
from pennywise.services.goals import contribute, create_goal, delete_goal, format_goal, list_goals, update_goal

from .helpers import current_user_id


def register_goal_routes(bp: Blueprint, database) -> None:
    goals = database["savings_goals"]

    @bp.get("/goals")
    def get_goals():
        return jsonify({"goals": [format_goal(doc) for doc in list_goals(goals, current_user_id())]})

    @bp.post("/goals")
    def post_goal():
        goal = create_goal(goals, current_user_id(), get_json_body())
        return jsonify({"success": True, "goal": format_goal(goal)}), 201

    @bp.patch("/goals/<goal_id>")
    def patch_goal(goal_id: str):
        goal = update_goal(goals, current_user_id(), goal_id, get_json_body())
        return jsonify({"success": True, "goal": format_goal(goal)})

    @bp.post("/goals/<goal_id>/contribute")
    def contribute_to_goal(goal_id: str):
        payload = get_json_body()
        goal = contribute(goals, current_user_id(), goal_id, payload.get("amount"))
        return jsonify({"success": True, "goal": format_goal(goal)})

    @bp.delete("/goals/<goal_id>")
    def remove_goal(goal_id: str):
        delete_goal(goals, current_user_id(), goal_id)
        return jsonify({"success": True})
