"""Campus Board: category boards, threaded comments and message requests for students."""
